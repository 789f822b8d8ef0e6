"""
Type-directed validation of attribute values against their definitions.

Each check returns a list of human-readable error messages; an empty list
means the value is acceptable.
"""
import re
from decimal import Decimal


def _option_values(definition):
    return {option.value for option in definition.options.all() if option.is_active}


def _is_number(value):
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _validate_string(definition, value):
    label = definition.label
    if not isinstance(value, str):
        return [f"{label} must be a string"]

    errors = []
    if definition.min_length and len(value) < definition.min_length:
        errors.append(f"{label} must be at least {definition.min_length} characters")
    if definition.max_length and len(value) > definition.max_length:
        errors.append(f"{label} must be at most {definition.max_length} characters")
    if definition.pattern and not re.search(definition.pattern, value):
        errors.append(f"{label} format is invalid")
    return errors


def _validate_number(definition, value):
    label = definition.label
    if not _is_number(value):
        return [f"{label} must be a number"]

    errors = []
    if definition.min_value is not None and value < definition.min_value:
        errors.append(f"{label} must be at least {definition.min_value:g}")
    if definition.max_value is not None and value > definition.max_value:
        errors.append(f"{label} must be at most {definition.max_value:g}")
    return errors


def _validate_boolean(definition, value):
    if not isinstance(value, bool):
        return [f"{definition.label} must be a boolean"]
    return []


def _validate_select(definition, value):
    if str(value) not in _option_values(definition):
        return [f"{definition.label} has invalid value: {value}"]
    return []


def _validate_multiselect(definition, value):
    if not isinstance(value, list):
        return [f"{definition.label} must be an array"]
    allowed = _option_values(definition)
    return [f"{definition.label} has invalid value: {v}" for v in value if str(v) not in allowed]


VALIDATORS = {
    'string': _validate_string,
    'date': _validate_string,
    'number': _validate_number,
    'boolean': _validate_boolean,
    'select': _validate_select,
    'multiselect': _validate_multiselect,
}


def validate_value(definition, value):
    """Errors for a single non-empty value"""
    if value is None:
        return []
    validator = VALIDATORS.get(definition.data_type)
    return validator(definition, value) if validator else []


def is_missing(value):
    return value is None or (isinstance(value, str) and value == '')


def validate_attributes(definitions, values):
    """Required check plus per-value validation for every definition"""
    errors = []
    for definition in definitions:
        value = values.get(definition.key)
        if definition.is_required and is_missing(value):
            errors.append(f"{definition.label} is required")
            continue
        if not is_missing(value):
            errors.extend(validate_value(definition, value))
    return errors
