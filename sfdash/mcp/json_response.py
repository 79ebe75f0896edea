import json


def create_json_response(success, **kwargs):
    """Create guaranteed valid JSON response"""
    result = {"success": success}

    # Only add safe, JSON-serializable values
    for key, value in kwargs.items():
        if value is None:
            result[key] = None
        elif isinstance(value, (str, int, float, bool)):
            result[key] = value
        elif isinstance(value, (list, dict)):
            result[key] = value
        else:
            result[key] = str(value)

    return json.dumps(result, indent=2, default=str)
