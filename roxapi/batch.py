"""Concurrent execution of named tasks with live progress on the terminal."""

from __future__ import annotations

import os
import queue
import shutil
import sys
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor

from roxapi.style import measure_width, style

_SPACE = " "
_SEP = ", "
_OMIT = ", ..."
_CURSOR_UP = "\x1b[1A\x1b[2K"


class BatchError(Exception):
    """Raised when a batch of tasks did not all succeed."""


class Task(ABC):
    """A unit of work run concurrently by :func:`run`.

    ``run`` is called from worker threads; implementations must be thread safe.
    """

    @abstractmethod
    def run(self):
        """Do the work and return its result, raising on failure."""


def format_elapsed(seconds):
    """Return a short human readable form of a duration given in seconds."""
    if seconds < 0:
        raise ValueError("elapsed time cannot be negative")
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    return f"{minutes}m{secs}s"


def render_bar(current, total, width):
    """Render a progress bar of ``width`` cells between brackets."""
    if width <= 0:
        return ""
    if total <= 0:
        filled = width
    else:
        filled = min(max(current, 0), total) * width // total
    return "[" + "=" * filled + " " * (width - filled) + "]"


def _term_size():
    return shutil.get_terminal_size().columns


def _bar_size(term_size):
    return min(term_size // 4, 50)


class _Tracker:
    """Tracks task progress from worker reports and draws it on a stream."""

    def __init__(self, desc, total, show_fail, stream):
        self.total = total
        self.total_pad = len(str(total))
        self.running = {}
        self.done = []
        self.desc_pure = desc
        self.desc = style(desc, fg="cyan", bold=True)
        self.desc_size = measure_width(self.desc)
        self.desc_head = " " * self.desc_size
        self.ok_count = 0
        self.fail_count = 0
        self.show_fail = show_fail
        self.fail_messages = []
        self.stream = stream

    def _print(self, text=""):
        print(text, file=self.stream, flush=True)

    def _cursor_up(self):
        self.stream.write(_CURSOR_UP)

    def wait(self, reports):
        start = time.monotonic()
        while len(self.done) < self.total:
            kind, idx, payload = reports.get()
            if kind == "running":
                self._trace_running(idx, payload)
            else:
                self._trace_done(idx, payload)
        elapsed = time.monotonic() - start

        if self.fail_count > 0:
            result = style("failed", fg="red")
        else:
            result = style("ok", fg="green")

        self._cursor_up()
        self._print()
        self._print(
            f"{self.desc_pure} result: {result}. {self.ok_count} ok; "
            f"{self.fail_count} failed; finished in {format_elapsed(elapsed)}"
        )
        if self.fail_messages:
            self._print()
            self._print("Error message:")
            for name, message in self.fail_messages:
                self._print(f"  {name}: {message}")
            self._print()

        self.done.sort(key=lambda item: item[0])
        return [result for _, result in self.done]

    def _trace_running(self, idx, name):
        self.running[idx] = name
        line = self.render()
        self._cursor_up()
        self._print(line)

    def _trace_done(self, idx, result):
        name = self.running.pop(idx, None)
        if name is None:
            return

        self._cursor_up()
        if isinstance(result, Exception):
            self.fail_count += 1
            self._print(f"{self.desc_head} {name} {style('fail', fg='red')}")
            if self.show_fail:
                self.fail_messages.append((name, str(result)))
        else:
            self.ok_count += 1
            self._print(f"{self.desc_head} {name} {style('ok', fg='green')}")
        self.done.append((idx, result))
        self._print(self.render())

    def render(self, term_size=None):
        """Render ``{desc} {bar} ({current}/{total}) {running}`` to fit the terminal."""
        term = _term_size() if term_size is None else term_size
        if self.desc_size > term:
            return "." * term

        line = self.desc
        bar_width = _bar_size(term)
        if self.desc_size + len(_SPACE) > term or bar_width == 0:
            return line
        line += _SPACE

        bar = render_bar(len(self.done), self.total, bar_width)
        if measure_width(line) + measure_width(bar) > term:
            return line
        line += bar

        if measure_width(line) + len(_SPACE) > term:
            return line
        line += _SPACE

        tag = self._render_tag()
        if measure_width(line) + measure_width(tag) > term:
            return line
        line += tag

        if measure_width(line) + len(_SPACE) > term:
            return line
        line += _SPACE

        left = term - measure_width(line)
        if left <= 0:
            return line
        return line + self._render_list(left)

    def _render_tag(self):
        current = f"{len(self.done):>{self.total_pad}}"
        return f"({current}/{self.total})"

    def _render_list(self, size):
        text = ""
        names = list(self.running.values())
        last = len(names) - 1
        for position, name in enumerate(names):
            add_size = measure_width(name) + (0 if position == 0 else len(_SEP))
            text_size = measure_width(text)
            new_size = text_size + add_size
            if new_size > size or (position != last and new_size == size):
                delta = size - text_size
                if delta == 0:
                    break
                text += "." * delta if delta < len(_OMIT) else _OMIT
                break
            if position != 0:
                text += _SEP
            text += name
        return text


def _execute(idx, name, task, reports):
    reports.put(("running", idx, name))
    runner = task.run if isinstance(task, Task) else task
    try:
        result = runner()
    except Exception as exc:  # noqa: BLE001 - failures are reported as results
        result = exc
    reports.put(("done", idx, result))


def run(desc, tasks, show_fail=False):
    """Run ``(name, task)`` pairs concurrently and return results in task order.

    A task is a :class:`Task` or a callable. Each result is the value the task
    returned, or the exception it raised. One worker thread is used per CPU.
    """
    tasks = list(tasks)
    if not tasks:
        return []

    worker_count = os.cpu_count() or 1
    stream = sys.stderr
    title = style(f"{desc} with {worker_count} workers:", fg="cyan", bold=True, underline=True)
    print(f"{title}\n", file=stream, flush=True)

    reports = queue.Queue()
    tracker = _Tracker(desc, len(tasks), show_fail, stream)
    with ThreadPoolExecutor(max_workers=worker_count) as executor:
        for idx, (name, task) in enumerate(tasks):
            executor.submit(_execute, idx, name, task, reports)
        results = tracker.wait(reports)
    return results


def must_run(desc, tasks):
    """Like :func:`run`, but raise :class:`BatchError` if any task failed."""
    results = run(desc, tasks, True)
    if not is_ok(results):
        raise BatchError(f"{desc} failed")
    return results


def is_ok(results):
    """Return True if no result is a failure."""
    return not any(isinstance(result, Exception) for result in results)