from enum import Enum
from typing import NamedTuple, Optional


class ColumnKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    TAGS = "tags"
    RELATIONSHIP = "relationship"


class Option(NamedTuple):
    value: str
    label: str


class Column(NamedTuple):
    """A column of the table view. Its position gives its letter."""

    id: str
    label: str
    kind: ColumnKind = ColumnKind.TEXT
    editable: bool = True
    width: int = 120
    options: tuple[Option, ...] = ()

    def option_label(self, value: str) -> Optional[str]:
        for option in self.options:
            if option.value == value:
                return option.label
        return None


STATUS_OPTIONS = (
    Option("not-started", "Not Started"),
    Option("in-progress", "In Progress"),
    Option("review", "Review"),
    Option("completed", "✓ Completed"),
)

PRIORITY_OPTIONS = (
    Option("low", "🟢 Low"),
    Option("medium", "🟡 Medium"),
    Option("high", "🔴 High"),
)

# A through L
DEFAULT_COLUMNS: tuple[Column, ...] = (
    Column("id", "ID", ColumnKind.TEXT, editable=False, width=80),
    Column("text", "Task Name", ColumnKind.TEXT, width=200),
    Column("relationship", "Hierarchy", ColumnKind.RELATIONSHIP, editable=False, width=220),
    Column("status", "Status", ColumnKind.SELECT, width=140, options=STATUS_OPTIONS),
    Column("priority", "Priority", ColumnKind.SELECT, width=120, options=PRIORITY_OPTIONS),
    Column("startDate", "Start Date", ColumnKind.DATE, width=140),
    Column("dueDate", "Due Date", ColumnKind.DATE, width=140),
    Column("progress", "Progress", ColumnKind.NUMBER, width=100),
    Column("sprint", "Sprint", ColumnKind.TEXT, width=100),
    Column("tags", "Tags", ColumnKind.TAGS, width=150),
    Column("notes", "Notes", ColumnKind.TEXT, width=250),
    Column("assignee", "Assignee", ColumnKind.SELECT, width=140),
)
