"""Resource schemas.

A ResourceSchema is everything that distinguishes one ERP-backed resource
from another: where it lives, how it is keyed, filtered and searched, which
fields the ERP calculates itself, how new keys are numbered and which status
transitions it allows.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Generic, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from connectors.odata import ODataFilter, entity_path
from core.resources.refno import ReferenceFormat
from core.resources.workflow import Workflow


E = TypeVar("E", bound=BaseModel)


@dataclass(frozen=True)
class ResourceSchema(Generic[E]):
    """Declarative description of one portal resource.

    Field names (``key_field``, ``status_field``, ...) are Python attribute
    names of ``model``; ``search_fields``, ``date_field`` and
    ``default_order_by`` are ERP column names.
    """
    name: str
    label: str
    entity_set: str
    model: Type[E]
    key_field: str
    filter_model: Type[ODataFilter] = ODataFilter
    write_entity_set: Optional[str] = None
    search_fields: Tuple[str, ...] = ()
    date_field: Optional[str] = None
    default_order_by: Optional[str] = None
    status_field: Optional[str] = None
    default_status: Optional[str] = None
    priority_field: Optional[str] = None
    sum_fields: Tuple[str, ...] = ()
    read_only_fields: FrozenSet[str] = frozenset()
    collections: FrozenSet[str] = frozenset()
    expand: Optional[str] = None
    reference_format: Optional[ReferenceFormat] = None
    workflow: Optional[Workflow] = None
    read_only: bool = False

    @property
    def writes_to(self) -> str:
        return self.write_entity_set or self.entity_set

    def column(self, field_name: str) -> str:
        """ERP column behind a model attribute."""
        info = self.model.model_fields[field_name]
        return info.alias or field_name

    @property
    def key_column(self) -> str:
        return self.column(self.key_field)

    def key_of(self, entity: E) -> Optional[str]:
        value = getattr(entity, self.key_field, None)
        return str(value) if value not in (None, "") else None

    def status_of(self, entity: E) -> str:
        if not self.status_field:
            return ""
        return getattr(entity, self.status_field, None) or ""

    def path(self, key: str) -> str:
        return entity_path(self.entity_set, key)

    def write_path(self, key: str) -> str:
        return entity_path(self.writes_to, key)

    def payload(self, entity: E, for_create: bool = False, with_status: bool = True) -> Dict[str, Any]:
        """ERP JSON body for a write.

        Drops the concurrency token, cached sub-collections and ERP-calculated
        fields; updates also drop the key, which travels in the URL. With
        ``with_status=False`` the status column is left out as well.
        """
        exclude = {"etag"} | set(self.collections) | set(self.read_only_fields)
        if not for_create:
            exclude.add(self.key_field)
        if not with_status and self.status_field:
            exclude.add(self.status_field)
        return entity.model_dump(by_alias=True, exclude_none=True, mode="json", exclude=exclude)
