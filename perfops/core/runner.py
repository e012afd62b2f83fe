"""
Test orchestration: submit a test, poll its output in the background and
render it until the test is finished.

The poller and the render loop share nothing but a RunOutputResult.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional, Set, Tuple

from loguru import logger

from perfops.api.models import RunOutput, RunRequest, TestKind
from perfops.cli.formatters import (
    Formatter,
    output_to_file,
    print_output,
    print_output_json,
    print_partial_output,
)
from perfops.core.config import RenderMode, RunOptions

SubmitFunc = Callable[[RunRequest], str]
FetchFunc = Callable[[str], RunOutput]


class RunOutputResult:
    """Latest output and error of a test, written by the poller and read by the renderer."""

    def __init__(self):
        self._lock = threading.Lock()
        self._output: Optional[RunOutput] = None
        self._error: Optional[BaseException] = None

    def set_output(self, output: Optional[RunOutput], error: Optional[BaseException] = None) -> None:
        with self._lock:
            self._output = output
            self._error = error

    def output(self) -> Tuple[Optional[RunOutput], Optional[BaseException]]:
        with self._lock:
            return self._output, self._error


class Poller(threading.Thread):
    """
    Background thread fetching the output of a test at a fixed interval.

    The first error ends polling; it is stored in the result for the
    render loop to raise. Completion is left to the render loop.
    """

    def __init__(
        self,
        fetch: FetchFunc,
        test_id: str,
        result: RunOutputResult,
        interval: float = 0.2,
    ):
        super().__init__(name=f"poller-{test_id}", daemon=True)
        self.fetch = fetch
        self.test_id = test_id
        self.result = result
        self.interval = interval
        self._cancel = threading.Event()

    def run(self) -> None:
        while not self._cancel.wait(self.interval):
            try:
                output = self.fetch(self.test_id)
            except Exception as e:
                logger.debug(f"Polling {self.test_id} failed: {e!r}")
                self.result.set_output(None, e)
                return
            self.result.set_output(output)

    def stop(self) -> None:
        self._cancel.set()

    @property
    def stopped(self) -> bool:
        return self._cancel.is_set()


def run_test(
    request: RunRequest,
    submit: SubmitFunc,
    fetch: FetchFunc,
    options: Optional[RunOptions] = None,
    formatter: Optional[Formatter] = None,
    kind: Optional[TestKind] = None,
) -> RunOutput:
    """
    Run a test, retrieve its output and present it to the user.

    Args:
        request: The test request
        submit: Submits the request and returns its test ID
        fetch: Returns the current output snapshot for a test ID
        options: Run options (render mode, JSON output, intervals)
        formatter: Output formatter; a terminal formatter is created if omitted
        kind: Test kind, used to decode kind-specific outputs

    Returns:
        The finished output

    Raises:
        Any exception raised by submit or fetch, unchanged
    """
    options = options or RunOptions()
    f = formatter or Formatter(print_id=options.debug and not options.output_json)

    f.start_spinner()
    try:
        test_id = submit(request)
    finally:
        f.stop_spinner()
    logger.debug(f"Test ID: {test_id}")

    streaming = options.mode is RenderMode.STREAM and not options.output_json
    if streaming and f.print_id:
        f.write(f"Test ID: {test_id}\n")
        f.flush_lines()

    result = RunOutputResult()
    poller = Poller(fetch, test_id, result, options.poll_interval)
    poller.start()

    printed_ids: Set[str] = set()
    if options.output_json:
        f.start_spinner()
    try:
        while True:
            time.sleep(options.render_interval)
            output, err = result.output()
            if err is not None:
                raise err
            if output is None:
                continue
            if streaming:
                print_partial_output(f, output, printed_ids, kind)
            elif not options.output_json:
                print_output(f, output, kind)
            if output.is_finished():
                break
    finally:
        poller.stop()
        # A fetch in flight is abandoned to the daemon thread.
        poller.join(options.poll_interval)
        f.close()
        if options.output_json:
            f.stop_spinner()

    logger.debug(f"Test {test_id} finished with {len(output.items)} item(s)")
    if options.output_json:
        print_output_json(output, f.out)
    if options.output_file is not None:
        output_to_file(output, options.output_file, kind)
    return output
