"""
Tests for BuildKit plain-progress parsing.
"""

from kiln.core.build_log import parse_build_log

CACHED_BUILD = """#1 [internal] load build definition from Dockerfile
#1 transferring dockerfile: 1.02kB done
#1 DONE 0.0s
#5 [builder 2/9] WORKDIR /usr/src
#5 CACHED
#8 [builder 5/9] COPY Cargo.toml Cargo.lock ./
#8 CACHED
#9 [builder 6/9] RUN --mount=type=cache,target=/usr/local/cargo/registry cargo fetch
#9 CACHED
#10 [builder 7/9] COPY . .
#10 DONE 0.1s
#11 [builder 8/9] RUN --mount=type=cache,target=/usr/local/cargo/registry --mount=type=cache,target=/usr/src/app/target cargo build --release
#11 0.412    Compiling htmx-gallery v0.1.0 (/usr/src/app)
#11 DONE 41.2s
#14 [runtime 6/6] COPY --from=builder /usr/src/app/src/static /app/static
#14 DONE 0.1s
#15 exporting to image
#15 DONE 0.2s
""".splitlines()

FAILED_BUILD = """#9 [builder 6/9] RUN --mount=type=cache,target=/usr/local/cargo/registry cargo fetch
#9 DONE 3.4s
#12 [builder 9/9] RUN --mount=type=cache,target=/usr/local/cargo/registry cargo install --bin htmx-gallery --path .
#12 0.512 error: no bin target named `htmx-gallery`
#12 ERROR: process "/bin/sh -c cargo install --bin htmx-gallery --path ." did not complete successfully: exit code: 101
------
 > [builder 9/9] RUN cargo install --bin htmx-gallery --path .:
------
""".splitlines()


class TestParseBuildLog:
    """Tests for parse_build_log."""

    def test_steps_recorded_in_order(self):
        log = parse_build_log(CACHED_BUILD)
        assert [(s.stage, s.index) for s in log.steps] == [
            ("builder", 2),
            ("builder", 5),
            ("builder", 6),
            ("builder", 7),
            ("builder", 8),
            ("runtime", 6),
        ]

    def test_internal_vertices_ignored(self):
        log = parse_build_log(CACHED_BUILD)
        assert all(s.stage != "internal" for s in log.steps)

    def test_cached_steps(self):
        log = parse_build_log(CACHED_BUILD)
        assert len(log.cached_steps) == 3
        assert log.find("cargo fetch", stage="builder").cached is True
        assert log.find("cargo build --release").cached is False

    def test_step_duration(self):
        log = parse_build_log(CACHED_BUILD)
        assert log.find("cargo build --release").seconds == 41.2

    def test_clean_build_has_no_failure(self):
        assert parse_build_log(CACHED_BUILD).failed_step is None

    def test_failed_step_and_exit_code(self):
        log = parse_build_log(FAILED_BUILD)
        failed = log.failed_step
        assert failed.index == 9
        assert failed.exit_code == 101
        assert "did not complete successfully" in failed.error

    def test_find_respects_stage(self):
        log = parse_build_log(CACHED_BUILD)
        assert log.find("COPY", stage="runtime").index == 6
        assert log.find("cargo fetch", stage="runtime") is None

    def test_tail_keeps_raw_lines(self):
        log = parse_build_log(FAILED_BUILD)
        assert log.tail(2) == " > [builder 9/9] RUN cargo install --bin htmx-gallery --path .:\n------"

    def test_padded_step_index(self):
        """BuildKit right-aligns the index once a stage has ten or more steps."""
        log = parse_build_log(
            [
                "#12 [builder  9/10] RUN --mount=type=cache,target=/usr/local/cargo/registry "
                "cargo install --bin htmx-gallery --path .",
                '#12 ERROR: process "/bin/sh -c cargo install --bin htmx-gallery --path ." '
                "did not complete successfully: exit code: 101",
            ]
        )
        failed = log.failed_step
        assert failed.stage == "builder"
        assert (failed.index, failed.total) == (9, 10)
        assert failed.exit_code == 101
        assert failed.instruction.startswith("RUN --mount")
