"""Hand-written stand-ins for the Playwright page/context and requests session."""

from __future__ import annotations

from typing import Any

from playwright.sync_api import TimeoutError as PlaywrightTimeout


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: int) -> None:
        self.now += ms / 1000


class FakeSignal:
    """Each wait advances the clock by *step_ms* (or to the deadline) and runs *on_signal*."""

    def __init__(self, clock: FakeClock, step_ms: int | None = None, on_signal=None) -> None:
        self.clock = clock
        self.step_ms = step_ms
        self.on_signal = on_signal
        self.attached = 0
        self.detached = 0
        self.waits: list[int] = []

    def attach(self) -> None:
        self.attached += 1

    def wait_for_signal(self, remaining_ms: int) -> bool:
        self.waits.append(remaining_ms)
        step = remaining_ms if self.step_ms is None else min(self.step_ms, remaining_ms)
        self.clock.advance_ms(step)
        if self.on_signal is not None:
            self.on_signal()
        return True

    def detach(self) -> None:
        self.detached += 1


class FakeNavigator:
    def __init__(
        self,
        clock: FakeClock,
        *,
        save_all: Any = "save-all-button",
        notice: Any = "notice",
        proof: Any = None,
        record: dict | None = None,
        location: str = "",
    ) -> None:
        self.clock = clock
        self.save_all = save_all
        self.notice = notice
        self.proof = proof
        self.record = record
        self.location = location
        self.calls: list[tuple] = []
        self.clicked: list[Any] = []
        self.settles: list[int] = []
        self.diagnostics: list[str] = []
        self.signals: list[FakeSignal] = []

    # routing
    def current_location(self) -> str:
        return self.location

    def go_to(self, location: str) -> None:
        self.calls.append(("go_to", location))
        self.location = location

    def settle(self, ms: int) -> None:
        self.calls.append(("settle", ms))
        self.settles.append(ms)

    # affordances
    def save_all_button(self, uuid: str):
        return self.save_all

    def success_notice(self):
        return self.notice

    def proof_button(self, uuid: str):
        return self.proof

    def inspect_record(self, uuid: str):
        return self.record

    def click(self, element) -> None:
        self.clicked.append(element)

    # signals
    def mutation_signal(self) -> FakeSignal:
        sig = FakeSignal(self.clock)
        self.signals.append(sig)
        return sig

    def poll_signal(self, interval_ms: int = 500) -> FakeSignal:
        sig = FakeSignal(self.clock, step_ms=interval_ms)
        self.signals.append(sig)
        return sig

    def capture_diagnostics(self, label: str):
        self.diagnostics.append(label)
        return None


class FakeSink:
    def __init__(self) -> None:
        self.artifacts: list = []
        self.downloads: list[tuple[Any, str]] = []

    def save(self, artifact) -> str:
        self.artifacts.append(artifact)
        return f"/out/{artifact.filename}"

    def save_download(self, download, filename: str) -> str:
        self.downloads.append((download, filename))
        return f"/out/{filename}"


class FakeHarvester:
    def __init__(self, content: str | None = "<html><h1>Prüfvermerk</h1></html>") -> None:
        self.content = content
        self.calls = 0

    def open_and_harvest(self, trigger) -> str | None:
        self.calls += 1
        trigger()
        return self.content


class FakeEmitter:
    """Minimal pyee-style on/remove_listener/emit, as Playwright objects expose."""

    def __init__(self) -> None:
        self.listeners: dict[str, list] = {}

    def on(self, event: str, handler) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler) -> None:
        self.listeners[event].remove(handler)

    def emit(self, event: str, *args) -> None:
        for handler in list(self.listeners.get(event, [])):
            handler(*args)


class FakeDownload:
    def __init__(self, suggested_filename: str) -> None:
        self.suggested_filename = suggested_filename
        self.saved_to: str | None = None

    def save_as(self, path: str) -> None:
        self.saved_to = path


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Returns queued responses in order and records each request's params."""

    def __init__(self, responses: list) -> None:
        self.responses = list(responses)
        self.requests: list[tuple[str, dict]] = []

    def get(self, url: str, params=None, headers=None, timeout=None):
        self.requests.append((url, dict(params or {})))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeElement:
    def __init__(self, name: str, events: list | None = None) -> None:
        self.name = name
        self.events = events if events is not None else []

    def dispatch_event(self, event: str) -> None:
        self.events.append((self.name, event))


class FakePage:
    """
    Records query_selector / evaluate / wait_for_function / wait_for_timeout.

    *elements* maps selector → element. *scripts* maps expression → answer;
    an answer may be a value, an exception to raise, or a callable taking
    the evaluate arg. Each wait_for_function consumes one pending mutation
    (bumping *seq*); with none pending it times out like Playwright does.
    """

    def __init__(self, *, elements: dict | None = None, scripts: dict | None = None,
                 mutations: int = 0, clock: FakeClock | None = None) -> None:
        self.elements = elements or {}
        self.scripts = scripts or {}
        self.mutations = mutations
        self.clock = clock
        self.seq = 0
        self.calls: list[tuple] = []

    def query_selector(self, selector: str):
        self.calls.append(("query_selector", selector))
        return self.elements.get(selector)

    def evaluate(self, expression: str, arg: Any = None):
        self.calls.append(("evaluate", expression, arg))
        answer = self.scripts.get(expression)
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(arg)
        return answer

    def wait_for_function(self, expression: str, arg: Any = None, timeout: float | None = None):
        self.calls.append(("wait_for_function", expression, arg, timeout))
        if self.mutations:
            self.mutations -= 1
            self.seq += 1
            return True
        if self.clock is not None:
            self.clock.advance_ms(timeout or 0)
        raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded.")

    def wait_for_timeout(self, ms: int) -> None:
        self.calls.append(("wait_for_timeout", ms))

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]
