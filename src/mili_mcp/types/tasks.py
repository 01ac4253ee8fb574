"""TypedDicts for the persisted task records.

Keys are camelCase because they are the on-disk format of
``.mili/active_task.json`` and ``.mili/task_history.jsonl``.
"""

from __future__ import annotations

from typing import NewType, NotRequired, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class HistoryEntryDict(TypedDict):
    date: ISOTimestamp
    note: str


class ActiveTaskDict(TypedDict):
    name: str
    startDate: ISOTimestamp
    status: str
    plan: NotRequired[str]
    history: list[HistoryEntryDict]
    completedDate: NotRequired[ISOTimestamp]


class ArchivedTaskDict(TypedDict):
    """An ActiveTaskDict frozen at completion; ``completedDate`` is always set."""

    name: str
    startDate: ISOTimestamp
    status: str
    plan: NotRequired[str]
    history: list[HistoryEntryDict]
    completedDate: ISOTimestamp
