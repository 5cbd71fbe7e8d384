# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# BUILD LOG PARSER
# -----------------------------------------------------------------------------
# Reads BuildKit ``--progress=plain`` output and recovers, per recipe step:
# which stage it belongs to, whether it came from cache, how long it took,
# and whether it failed.
#
#   #9 [builder 6/9] RUN --mount=type=cache,target=... cargo fetch
#   #9 CACHED
#   #10 DONE 41.2s
#   #11 ERROR: process "/bin/sh -c cargo install ..." did not complete ...
# -----------------------------------------------------------------------------

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

HEADER_PATTERN = re.compile(
    r"^#(?P<vertex>\d+) \[(?P<stage>[\w.-]+)\s+(?P<index>\d+)/(?P<total>\d+)\] (?P<text>.*)$"
)
CACHED_PATTERN = re.compile(r"^#(?P<vertex>\d+) CACHED\s*$")
DONE_PATTERN = re.compile(r"^#(?P<vertex>\d+) DONE (?P<seconds>\d+(?:\.\d+)?)s\s*$")
ERROR_PATTERN = re.compile(r"^#(?P<vertex>\d+) ERROR:? (?P<message>.*)$")
EXIT_CODE_PATTERN = re.compile(r"exit code: (?P<code>\d+)")


@dataclass
class StepRecord:
    """One recipe step as reported by BuildKit."""

    vertex: int
    stage: str
    index: int
    total: int
    instruction: str
    cached: bool = False
    seconds: float | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int | None:
        if self.error is None:
            return None
        match = EXIT_CODE_PATTERN.search(self.error)
        return int(match.group("code")) if match else None


@dataclass
class BuildLog:
    """Parsed build output."""

    steps: list[StepRecord] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)

    @property
    def cached_steps(self) -> list[StepRecord]:
        return [s for s in self.steps if s.cached]

    @property
    def failed_step(self) -> StepRecord | None:
        return next((s for s in self.steps if s.error is not None), None)

    def find(self, needle: str, stage: str | None = None) -> StepRecord | None:
        """First step whose instruction text contains ``needle``."""
        for step in self.steps:
            if needle in step.instruction and (stage is None or step.stage == stage):
                return step
        return None

    def tail(self, count: int = 40) -> str:
        return "\n".join(self.lines[-count:])


def parse_build_log(lines: Iterable[str]) -> BuildLog:
    """Parse plain BuildKit progress lines into step records."""
    log = BuildLog()
    by_vertex: dict[int, StepRecord] = {}

    for raw in lines:
        line = raw.rstrip("\n")
        log.lines.append(line)

        header = HEADER_PATTERN.match(line)
        if header:
            vertex = int(header.group("vertex"))
            if vertex not in by_vertex:
                step = StepRecord(
                    vertex=vertex,
                    stage=header.group("stage"),
                    index=int(header.group("index")),
                    total=int(header.group("total")),
                    instruction=header.group("text"),
                )
                by_vertex[vertex] = step
                log.steps.append(step)
            continue

        cached = CACHED_PATTERN.match(line)
        if cached and int(cached.group("vertex")) in by_vertex:
            by_vertex[int(cached.group("vertex"))].cached = True
            continue

        done = DONE_PATTERN.match(line)
        if done and int(done.group("vertex")) in by_vertex:
            by_vertex[int(done.group("vertex"))].seconds = float(done.group("seconds"))
            continue

        error = ERROR_PATTERN.match(line)
        if error and int(error.group("vertex")) in by_vertex:
            by_vertex[int(error.group("vertex"))].error = error.group("message")

    return log
