"""Failure statistics across many build records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ci_inspect.console import Console, markdown_table

MAX_SOURCES_IN_TABLE = 5


@dataclass(slots=True)
class FailureGroup:
    """All occurrences of one failure reason."""

    type: str
    reason: str
    count: int = 0
    sources: list[str] = field(default_factory=list)
    machines: list[str] = field(default_factory=list)
    builds: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "reason": self.reason,
            "count": self.count,
            "sources": self.sources,
            "machines": self.machines,
            "builds": self.builds,
        }


class FailureAggregator:
    """Groups per-build failure records by type and reason."""

    def __init__(self, records: Sequence[dict[str, Any]]) -> None:
        self._records = list(records)
        self.groups: list[FailureGroup] = []

    def aggregate(self) -> list[dict[str, Any]]:
        """Return groups sorted by descending count, then type and reason."""

        groups: dict[tuple[str, str], FailureGroup] = {}
        for record in self._records:
            build_url = record.get("url") or ""
            source = record.get("source") or build_url
            for failure in record.get("failures") or []:
                key = (failure.get("type") or "", failure.get("reason") or "")
                group = groups.get(key)
                if group is None:
                    group = groups[key] = FailureGroup(type=key[0], reason=key[1])
                group.count += 1
                _append_unique(group.sources, source)
                _append_unique(group.builds, build_url)
                _append_unique(group.machines, failure.get("builtOn"))

        self.groups = sorted(
            groups.values(),
            key=lambda group: (-group.count, group.type, group.reason),
        )
        return [group.to_dict() for group in self.groups]

    def display(self, console: Console) -> None:
        if not self.groups:
            console.info("No failures to aggregate")
            return
        for failure_type, groups in self._by_type():
            console.separator(failure_type)
            for group in groups:
                console.log(f"{group.count:>4}  {group.reason}")
                console.log(f"      machines: {', '.join(group.machines) or '-'}")
                console.log(f"      sources:  {', '.join(group.sources[:MAX_SOURCES_IN_TABLE])}")

    def format_as_markdown(self) -> str:
        if not self.groups:
            return ""
        total = sum(group.count for group in self.groups)
        failed_builds = sum(1 for record in self._records if record.get("failures"))
        heading = f"{_plural(total, 'failure')} in {_plural(failed_builds, 'build')}"
        parts = [f"# Failure statistics ({heading})\n\n"]
        for failure_type, groups in self._by_type():
            rows = [
                [
                    group.reason,
                    group.count,
                    ", ".join(group.machines) or None,
                    " ".join(_source_link(url) for url in group.sources[:MAX_SOURCES_IN_TABLE]),
                ]
                for group in groups
            ]
            table = markdown_table(["Reason", "Count", "Machines", "Sources"], rows)
            parts.append(f"## {failure_type}\n\n{table}\n\n")
        return "".join(parts)

    def _by_type(self) -> list[tuple[str, list[FailureGroup]]]:
        ordered: dict[str, list[FailureGroup]] = {}
        for group in self.groups:
            ordered.setdefault(group.type, []).append(group)
        return list(ordered.items())


def _append_unique(values: list[str], value: str | None) -> None:
    if value and value not in values:
        values.append(value)


def _source_link(url: str) -> str:
    label = url.rstrip("/").rsplit("/", 1)[-1]
    return f"[#{label}]({url})"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"
