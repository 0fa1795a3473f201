"""Record handles over raw index documents."""

from typing import Any, Dict, Optional


class SolrRecord:
    """RecordRef backed by a Solr document dictionary."""

    def __init__(self, doc: Dict[str, Any]) -> None:
        self.doc = doc

    @property
    def record_id(self) -> Optional[str]:
        value = self.doc.get("id")
        return str(value) if value is not None else None

    def value_of(
        self,
        field: str,
        prefer_first_of_sorted: bool = True,
        sort_direction: str = "desc",
    ) -> Optional[str]:
        value = self.doc.get(field)
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            values = [str(v) for v in value if v is not None]
            if not values:
                return None
            if prefer_first_of_sorted:
                values.sort(reverse=sort_direction.lower() == "desc")
            return values[0]
        return str(value)

    def __repr__(self) -> str:
        return f"<SolrRecord id={self.record_id}>"
