"""Enumeration type definitions"""

from enum import Enum


class NodeType(str, Enum):
    """Form schema node types"""

    SECTION = "Section"
    INPUT = "Input"
    SELECT = "Select"
    CHECKBOX = "Checkbox"


class DataType(str, Enum):
    """Value formats accepted by an Input node"""

    TEXT = "text"
    NUMBER = "number"
    URL = "url"


class ApprovalStatus(str, Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_REWORK = "NEEDS_REWORK"


class ExecutionStatus(str, Enum):
    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class ReviewDecision(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
