import uuid


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def try_coerce_uuid(value) -> uuid.UUID | None:
    try:
        return coerce_uuid(value)
    except (TypeError, ValueError):
        return None


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)
