class ListResponseMixin:
    """Wraps a service's ``list`` in the ``ListResponse`` envelope.

    ``limit`` and ``offset`` are read from kwargs, or else from the last two
    positional arguments, matching the signature every ``list`` uses.
    """

    def list_response(self, db, *args, **kwargs) -> dict:
        items = self.list(db, *args, **kwargs)
        limit = kwargs.get("limit", args[-2] if len(args) >= 2 else None)
        offset = kwargs.get("offset", args[-1] if args else None)
        return {"items": items, "count": len(items), "limit": limit, "offset": offset}
