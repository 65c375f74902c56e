"""Generic ERP-backed resources: schemas, workflows, numbering and summaries."""

from core.resources.refno import ReferenceFormat, increment_reference
from core.resources.schema import ResourceSchema
from core.resources.service import ResourceService
from core.resources.summary import Summary, summarize
from core.resources.workflow import Transition, Workflow, transition

__all__ = [
    "ReferenceFormat",
    "ResourceSchema",
    "ResourceService",
    "Summary",
    "Transition",
    "Workflow",
    "increment_reference",
    "summarize",
    "transition",
]
