from .import_source import ImportSource, SourceType
from .entry import ImportedEntry, EntryStatus
from .rule import MappingRule, MatchOperator
from .submission import SubmittedEntry, SubmissionStatus
from .project import TimelogProject
from .task import TimelogTask

__all__ = [
    "ImportSource",
    "SourceType",
    "ImportedEntry",
    "EntryStatus",
    "MappingRule",
    "MatchOperator",
    "SubmittedEntry",
    "SubmissionStatus",
    "TimelogProject",
    "TimelogTask",
]
