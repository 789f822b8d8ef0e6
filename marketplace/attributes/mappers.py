"""Mapping between attribute values and their typed storage columns"""
import json

VALUE_TYPES = {
    'multiselect': 'array',
    'number': 'number',
    'boolean': 'boolean',
    'select': 'string',
    'string': 'string',
    'date': 'string',
}


def get_value_type(data_type):
    return VALUE_TYPES.get(data_type, 'string')


def prepare_value_data(data_type, value):
    """Column values for storing ``value`` of the given definition type"""
    data = {
        'value': json.dumps(value, default=str),
        'value_type': get_value_type(data_type),
        'value_string': None,
        'value_number': None,
        'value_boolean': None,
        'value_json': None,
    }

    if data_type in ('string', 'select', 'date'):
        data['value_string'] = str(value)
    elif data_type == 'number':
        data['value_number'] = float(value)
    elif data_type == 'boolean':
        data['value_boolean'] = bool(value)
    elif data_type == 'multiselect':
        data['value_json'] = [str(v) for v in value]
    return data


def extract_value(attribute):
    """Typed Python value of a stored OrganizationAttribute"""
    value_type = attribute.value_type
    if value_type == 'string':
        return attribute.value_string
    if value_type == 'number':
        number = attribute.value_number
        if number is not None and float(number).is_integer():
            return int(number)
        return number
    if value_type == 'boolean':
        return attribute.value_boolean
    if value_type == 'array':
        items = sorted(attribute.array_items.all(), key=lambda item: item.position)
        if items:
            return [item.value for item in items]
        return attribute.value_json or []
    try:
        return json.loads(attribute.value)
    except (TypeError, ValueError):
        return None
