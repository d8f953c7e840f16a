"""Jenkins JSON API client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ci_inspect.ci.jobs import CiKind
from ci_inspect.http.cache import ResponseCache
from ci_inspect.http.fetcher import HttpFetcher

logger = logging.getLogger(__name__)

BUILD_TREE = (
    "result,url,number,building,timestamp,duration,builtOn,displayName,"
    "actions[parameters[name,value]],"
    "subBuilds[jobName,buildNumber,result,url,phaseName],"
    "runs[number,url,result,builtOn]"
)
LIST_TREE = "builds[number,url,result,building,timestamp]"


@dataclass(frozen=True, slots=True)
class BuildSummary:
    """One entry of a job's build listing."""

    number: int
    url: str
    result: str | None
    building: bool
    timestamp: int | None = None

    @property
    def started_at(self) -> datetime | None:
        if self.timestamp is None:
            return None
        return datetime.fromtimestamp(self.timestamp / 1000, tz=UTC)

    @property
    def failed(self) -> bool:
        return self.result == "FAILURE"

    def to_dict(self) -> dict[str, Any]:
        started = self.started_at
        return {
            "number": self.number,
            "url": self.url,
            "result": self.result,
            "building": self.building,
            "startedAt": started.isoformat() if started else None,
        }


class JenkinsClient:
    """Reads build data and console output from a Jenkins server.

    Responses for finished builds go through ``cache`` when one is given;
    build listings are always fetched fresh.
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        base_url: str,
        cache: ResponseCache | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self.base_url = base_url.rstrip("/")

    def job_url(self, job_name: str, build_id: int | None = None) -> str:
        url = f"{self.base_url}/job/{job_name}/"
        if build_id is not None:
            url = f"{url}{build_id}/"
        return url

    def get_build(self, job_name: str, build_id: int, tree: str = BUILD_TREE) -> dict[str, Any]:
        return self.get_build_by_url(self.job_url(job_name, build_id), tree=tree)

    def get_build_by_url(self, build_url: str, tree: str = BUILD_TREE) -> dict[str, Any]:
        api_url = _api_url(build_url)
        cache_key = f"build:{api_url}?tree={tree}"
        cached = self._cache_get(cache_key)
        if isinstance(cached, dict):
            return cached

        build = self._fetcher.get_json(api_url, params={"tree": tree})
        if not build.get("building"):
            self._cache_put(cache_key, build)
        return build

    def get_console_text(self, build_url: str, *, finished: bool = True) -> str:
        console_url = f"{build_url.rstrip('/')}/consoleText"
        cache_key = f"console:{console_url}"
        cached = self._cache_get(cache_key)
        if isinstance(cached, str):
            return cached

        text = self._fetcher.get_text(console_url)
        if finished:
            self._cache_put(cache_key, text)
        return text

    def list_builds(self, ci_kind: CiKind, count: int = 100) -> list[BuildSummary]:
        """Return the newest ``count`` builds of a CI pipeline, newest first."""

        data = self._fetcher.get_json(
            _api_url(self.job_url(ci_kind.job_name)),
            params={"tree": f"{LIST_TREE}{{0,{count}}}"},
        )
        builds = [
            BuildSummary(
                number=int(item["number"]),
                url=item.get("url") or self.job_url(ci_kind.job_name, int(item["number"])),
                result=item.get("result"),
                building=bool(item.get("building")),
                timestamp=item.get("timestamp"),
            )
            for item in data.get("builds", [])
        ]
        logger.info("Listed %d builds of %s", len(builds), ci_kind.job_name)
        return builds

    def _cache_get(self, key: str) -> Any | None:
        if self._cache is None:
            return None
        return self._cache.get(key)

    def _cache_put(self, key: str, value: Any) -> None:
        if self._cache is not None:
            self._cache.put(key, value)


def build_parameters(build: dict[str, Any]) -> dict[str, str]:
    """Flatten ``actions[].parameters[]`` into a name -> value mapping."""

    params: dict[str, str] = {}
    for action in build.get("actions") or []:
        if not isinstance(action, dict):
            continue
        for param in action.get("parameters") or []:
            name = param.get("name")
            if name:
                params[name] = "" if param.get("value") is None else str(param["value"])
    return params


def _api_url(build_url: str) -> str:
    return f"{build_url.rstrip('/')}/api/json"
