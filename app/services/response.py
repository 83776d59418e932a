from __future__ import annotations


class ListResponseMixin:
    """Adds ``list_response`` to service classes that expose ``list``."""

    @classmethod
    def list_response(cls, db, *args, **kwargs) -> dict:
        items = cls.list(db, *args, **kwargs)
        return {
            "items": items,
            "count": len(items),
            "limit": kwargs.get("limit"),
            "offset": kwargs.get("offset"),
        }
