"""
Model description converters.

Converts the parsed model description (mappings or objects) to DataModelSpec.
"""

from coredata_rest.converters.model_converter import (
    convert_entity,
    convert_model_description,
    load_model_file,
)

__all__ = ["convert_entity", "convert_model_description", "load_model_file"]
