# rich-based TUI dashboard
# src/monitoring/dashboard_tui.py
"""
Terminal dashboard for the control loop.

A `rich` live view bound to the monitoring EventBus. It renders:

- Agent status: phase, current goal, queue progress
- Last actions: the most recent executed commands with their outcome
- Recent failures: reasons fed back to the planner
- Chat: the latest player messages

Runs in-process; no web server.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Any, Deque, Dict, Optional

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .bus import EventBus
from .events import EventType, MonitoringEvent

MAX_ROWS = 8


class TuiDashboard:
    """
    Live terminal dashboard.

    Consumes MonitoringEvents into a small in-memory state dict and
    re-renders it periodically.
    """

    def __init__(self, bus: EventBus, *, console: Optional[Console] = None) -> None:
        self._bus = bus
        self._console = console or Console()
        self._lock = threading.Lock()
        self._stop = threading.Event()

        self._state: Dict[str, Any] = {
            "phase": "IDLE",
            "goal": "",
            "progress": "",
            "plans": 0,
            "last_error": None,
        }
        self._actions: Deque[Dict[str, Any]] = deque(maxlen=MAX_ROWS)
        self._failures: Deque[str] = deque(maxlen=MAX_ROWS)
        self._chat: Deque[str] = deque(maxlen=MAX_ROWS)

        self._bus.subscribe(self._on_event)

    # --------------------------------------------------------
    # Event handler
    # --------------------------------------------------------

    def _on_event(self, event: MonitoringEvent) -> None:
        et = event.event_type
        p = event.payload
        with self._lock:
            if et == EventType.AGENT_PHASE_CHANGE:
                self._state["phase"] = p.get("phase", "UNKNOWN")

            elif et == EventType.PLAN_CREATED:
                self._state["goal"] = p.get("goal", "")
                self._state["plans"] += 1
                self._state["progress"] = f"0/{len(p.get('tasks') or [])} completed"

            elif et == EventType.PLAN_FAILED:
                self._failures.append(f"plan: {event.message}")

            elif et == EventType.ACTION_EXECUTED:
                self._actions.append(
                    {"command": p.get("command"), "success": p.get("success"), "error": p.get("error")}
                )
                self._state["progress"] = p.get("progress", self._state["progress"])
                if not p.get("success"):
                    self._state["last_error"] = p.get("error")
                    self._failures.append(f"{p.get('kind')}: {p.get('error')}")

            elif et == EventType.CHAT_RECEIVED:
                self._chat.append(event.message)

            elif et == EventType.LOG and p.get("subtype"):
                self._failures.append(f"{p['subtype']}: {event.message}")

    def state(self) -> Dict[str, Any]:
        """Copy of the rendered state (tests, DUMP tooling)."""
        with self._lock:
            return {
                **self._state,
                "actions": list(self._actions),
                "failures": list(self._failures),
                "chat": list(self._chat),
            }

    # --------------------------------------------------------
    # Rendering
    # --------------------------------------------------------

    def _render_status(self, state: Dict[str, Any]) -> Panel:
        txt = Text()
        txt.append("Phase: ", style="bold")
        txt.append(f"{state['phase']}\n")
        txt.append("Goal: ", style="bold")
        txt.append(f"{state['goal'] or '<none>'}\n")
        txt.append("Progress: ", style="bold")
        txt.append(f"{state['progress'] or '-'}   ")
        txt.append("Plans: ", style="bold")
        txt.append(str(state["plans"]))
        return Panel(txt, title="Agent Status", border_style="cyan")

    def _render_actions(self, state: Dict[str, Any]) -> Panel:
        table = Table(show_header=True, header_style="bold magenta", expand=True)
        table.add_column("Command", ratio=2)
        table.add_column("Result", ratio=3)
        if not state["actions"]:
            table.add_row("<none>", "-")
        for row in state["actions"]:
            result = "[green]ok[/green]" if row["success"] else f"[red]{row['error']}[/red]"
            table.add_row(str(row["command"]), result)
        return Panel(table, title="Actions", border_style="green")

    def _render_failures(self, state: Dict[str, Any]) -> Panel:
        table = Table.grid()
        table.add_column(justify="left")
        if not state["failures"]:
            table.add_row("[bold green]No failures recorded.[/bold green]")
        for line in state["failures"]:
            table.add_row(line)
        return Panel(table, title="Failures", border_style="red")

    def _render_chat(self, state: Dict[str, Any]) -> Panel:
        body = "\n".join(state["chat"]) or "<quiet>"
        return Panel(body, title="Chat", border_style="yellow")

    def build_layout(self) -> Layout:
        state = self.state()
        layout = Layout()
        layout.split(
            Layout(name="top", size=5),
            Layout(name="middle", ratio=1),
        )
        layout["top"].update(self._render_status(state))
        layout["middle"].split_row(
            Layout(name="actions", ratio=2),
            Layout(name="side"),
        )
        layout["side"].split(Layout(name="failures"), Layout(name="chat"))
        layout["actions"].update(self._render_actions(state))
        layout["failures"].update(self._render_failures(state))
        layout["chat"].update(self._render_chat(state))
        return layout

    # --------------------------------------------------------
    # Main loop
    # --------------------------------------------------------

    def run(self, refresh_per_second: float = 4.0) -> None:
        """Render until stop() is called. Blocks the calling thread."""
        refresh_delay = 1.0 / max(refresh_per_second, 0.1)
        with Live(self.build_layout(), console=self._console, refresh_per_second=refresh_per_second) as live:
            while not self._stop.is_set():
                live.update(self.build_layout())
                time.sleep(refresh_delay)

    def stop(self) -> None:
        self._stop.set()
        self._bus.unsubscribe(self._on_event)
