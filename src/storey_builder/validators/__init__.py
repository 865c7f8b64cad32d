"""Document validation.

- document: level name uniqueness, dangling level / floor type references,
  openings outside their host floor
"""

from storey_builder.validators.document import ValidationError, validate_document

__all__ = ["ValidationError", "validate_document"]
