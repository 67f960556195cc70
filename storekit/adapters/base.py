# storekit/adapters/base.py
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable
from storekit.transactions import ActionLike

@runtime_checkable
class StorageDriver(Protocol):
    """The CRUD/query/transaction contract every backend driver satisfies.

    A driver is bound to one table or collection for its lifetime.
    "Nothing matched" is reported through the return value (None, False,
    0 or an empty list); failures raise a StorekitError subclass.
    """

    table_name: str

    def create(self, record: Dict[str, Any]) -> Any:
        """Insert one record.

        Args:
            record: Non-empty mapping of field to value.

        Returns:
            The generated or supplied primary identifier.
        """
        ...

    def bulk_insert(self, records: List[Dict[str, Any]]) -> Any:
        """Insert records in one request where the backend supports it.

        Args:
            records: Non-empty list of records that all share the same fields.

        Returns:
            The inserted count, or the inserted identifiers where the backend reports them.
        """
        ...

    def get(self, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the first record matching all conditions, or None."""
        ...

    def get_all(
        self,
        conditions: Optional[Dict[str, Any]] = None,
        sort: Optional[Dict[str, Any]] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve matching records, sorted and paginated.

        Args:
            conditions: Optional field-value equality filters; empty means all records.
            sort: Optional ordered mapping of field to "asc"/"desc" (or 1/-1).
            limit: Maximum number of records.
            offset: Number of matching records to skip.

        Returns:
            List of dictionaries containing the matching records.
        """
        ...

    def update(self, data: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
        """Overwrite the fields in data on every matching record; True iff any matched."""
        ...

    def increment(self, field: str, amount: Any, conditions: Dict[str, Any]) -> bool:
        """Add amount to field on matching records, a missing field counting as zero."""
        ...

    def delete(self, conditions: Dict[str, Any]) -> bool:
        """Remove matching records; True iff any was removed."""
        ...

    def soft_delete(self, conditions: Dict[str, Any], deleted_field: str = "isDeleted") -> bool:
        """Flag matching records as deleted instead of removing them."""
        ...

    def count(self, conditions: Optional[Dict[str, Any]] = None) -> int:
        ...

    def exists(self, conditions: Optional[Dict[str, Any]] = None) -> bool:
        ...

    def search(self, query: str, fields: Sequence[str]) -> List[Dict[str, Any]]:
        """Return records where any of fields contains query as a substring."""
        ...

    def transaction(self, actions: Sequence[ActionLike]) -> bool:
        """Apply create/update/delete/increment actions as one atomic unit.

        Returns:
            True once committed. On any failure nothing is applied and the error is raised.
        """
        ...
