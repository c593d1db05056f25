from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, VerticalScroll
from textual.widgets import Header, Footer, Input, Label, Switch, TextArea
import asyncio
from .mock_engine import MockEngine
from .mock_server import RETRY_BIND_DELAY, MockServer
from .request_log import RequestLog
from .rules import ConfigError


class MockTui(App):
    CSS = """
    Screen {
        layout: grid;
        grid-size: 2;
        grid-columns: 1fr 3fr;
        grid-rows: 1fr;
    }

    .sidebar {
        height: 100%;
        overflow-y: auto;
    }

    .main {
        height: 100%;
        padding: 1;
    }

    .control-box {
        background: $panel;
        border: solid $accent;
        padding: 1 2;
        margin: 1;
        height: auto;
    }

    .box-title {
        color: $accent;
        text-style: bold;
        margin-bottom: 1;
        padding-bottom: 1;
    }

    Input {
        width: 100%;
        margin-bottom: 1;
    }

    Horizontal {
        margin-bottom: 1;
        height: auto;
    }

    .status-on {
        color: $success;
        text-style: bold;
    }

    .status-off {
        color: $error;
        text-style: bold;
    }

    #logs {
        height: 100%;
        border: solid $accent;
    }
    """

    def __init__(self, config_file=None, port=8888, host='0.0.0.0',
                 retry_bind_delay=RETRY_BIND_DELAY):
        super().__init__()
        self.config_file = config_file
        self.port = port
        self.host = host
        self.retry_bind_delay = retry_bind_delay
        self.mock_server = None
        self.mock_worker = None
        self.log_queue = asyncio.Queue()

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with VerticalScroll(classes="sidebar"):
            with Container(classes="control-box"):
                yield Label(" Mock Control", classes="box-title")
                with Horizontal():
                    yield Switch(id="toggle_mock")
                    yield Label(" OFFLINE", id="status_label", classes="status-off")
                yield Label("Listen Port")
                yield Input(value=str(self.port), id="port", type="integer")
                yield Label("Rules File (JSON array, empty = default rule only)")
                yield Input(value=self.config_file or "", placeholder="rules.json", id="config")

        with Container(classes="main"):
            yield Label("Received Requests")
            yield TextArea(id="logs", read_only=True, show_line_numbers=False)

        yield Footer()

    async def on_mount(self):
        self.log_worker = asyncio.create_task(self.process_logs())

    async def process_logs(self):
        log_widget = self.query_one("#logs", TextArea)
        while True:
            msg = await self.log_queue.get()
            log_widget.load_text(log_widget.text + msg + "\n")
            log_widget.scroll_end(animate=False)

    async def on_switch_changed(self, event: Switch.Changed) -> None:
        if event.switch.id != "toggle_mock":
            return
        status_label = self.query_one("#status_label", Label)
        if event.value and not await self.start_mock():
            event.switch.value = False
            return
        if event.value:
            status_label.update(" ONLINE")
            status_label.remove_class("status-off")
            status_label.add_class("status-on")
        else:
            status_label.update(" OFFLINE")
            status_label.remove_class("status-on")
            status_label.add_class("status-off")
            self.stop_mock()

    async def start_mock(self):
        port = int(self.query_one("#port", Input).value or "8888")
        config_file = self.query_one("#config", Input).value or None

        try:
            engine = MockEngine.from_config(
                config_file, request_log=RequestLog(sink=self.log_queue.put_nowait)
            )
        except ConfigError as e:
            await self.log_queue.put(f"✗ {e}")
            return False

        self.mock_server = MockServer(
            host=self.host, port=port, engine=engine,
            retry_bind_delay=self.retry_bind_delay
        )
        self.mock_server.log_queue = self.log_queue
        self.mock_worker = asyncio.create_task(self.mock_server.start())
        self.mock_worker.add_done_callback(self.on_mock_done)
        await self.log_queue.put(
            f"✓ Mock started on port {port} with {len(engine.rules)} rule(s)"
        )
        return True

    def stop_mock(self):
        if not self.mock_server:
            return
        self.mock_server.stop()
        if self.mock_worker:
            self.mock_worker.cancel()
        self.mock_server = None
        self.log_queue.put_nowait("✗ Mock stopped")

    def on_mock_done(self, task):
        # Only the current worker can take the switch down
        if task is not self.mock_worker or task.cancelled() or task.exception() is None:
            return
        self.log_queue.put_nowait(f"✗ Mock failed: {task.exception()}")
        self.query_one("#toggle_mock", Switch).value = False
