"""Map key presses onto user actions."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from playdeck.config import BehaviorConfig, KeyBindings
from playdeck.core.navigation import FocusRegion, ViewId
from playdeck.logging import get_logger
from playdeck.state import SharedState
from playdeck.ui import actions

logger = get_logger(__name__)

_SEQUENCE_NAMES = {
    "KEY_UP": "up",
    "KEY_DOWN": "down",
    "KEY_LEFT": "left",
    "KEY_RIGHT": "right",
    "KEY_ENTER": "enter",
    "KEY_ESCAPE": "esc",
    "KEY_BACKSPACE": "backspace",
    "KEY_DELETE": "backspace",
    "KEY_TAB": "tab",
    "KEY_PGUP": "pageup",
    "KEY_PGDOWN": "pagedown",
}

_CONTROL_NAMES = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x1b": "esc",
    "\x08": "backspace",
    "\x7f": "backspace",
}

_MOVES = {"up": -1, "k": -1, "down": 1, "j": 1}


def normalize_key(key: Any) -> str | None:
    """Return the binding name for a blessed keystroke (or a plain string)."""

    name = getattr(key, "name", None)
    if name:
        mapped = _SEQUENCE_NAMES.get(name)
        if mapped is not None:
            return mapped
        return name.removeprefix("KEY_").lower()
    text = str(key)
    if not text:
        return None
    if text == " ":
        return "space"
    if text in _CONTROL_NAMES:
        return _CONTROL_NAMES[text]
    if len(text) == 1 and ord(text) < 32:
        return f"ctrl-{chr(ord(text) + 96)}"
    return text


class KeyHandler:
    """Translate normalized key names into state mutations and commands.

    :meth:`handle` returns ``False`` when the session should end.
    """

    def __init__(
        self,
        state: SharedState,
        *,
        behavior: BehaviorConfig,
        bindings: KeyBindings,
    ) -> None:
        self._state = state
        self._behavior = behavior
        self._bindings = bindings
        self._actions: dict[str, Callable[[], Any]] = {
            "toggle_playback": lambda: actions.toggle_playback(state),
            "seek_forwards": lambda: actions.seek_forwards(state, behavior.seek_milliseconds),
            "seek_backwards": lambda: actions.seek_backwards(state, behavior.seek_milliseconds),
            "increase_volume": lambda: actions.increase_volume(state, behavior.volume_increment),
            "decrease_volume": lambda: actions.decrease_volume(state, behavior.volume_increment),
            "next_track": lambda: actions.next_track(state),
            "previous_track": lambda: actions.previous_track(state),
            "shuffle": lambda: actions.toggle_shuffle(state),
            "repeat": lambda: actions.cycle_repeat(state),
            "like": lambda: actions.toggle_like_current(state),
            "manage_devices": lambda: actions.open_devices(state),
            "search": lambda: actions.open_search_input(state),
            "submit": lambda: actions.activate_selection(state),
            "next_page": self._next_page,
            "previous_page": self._previous_page,
            "help": lambda: state.push_route(ViewId.DIALOG, FocusRegion.HELP_MENU),
        }

    def handle(self, key: str | None) -> bool:
        if key is None:
            return True
        if key == "ctrl-c":
            return False
        if self._state.current_route().active_block is FocusRegion.INPUT:
            self._handle_input(key)
            return True

        action = self._bindings.action_for(key)
        if action == "back":
            return actions.back(self._state)
        if action is not None and action in self._actions:
            logger.debug("Key %s triggered %s", key, action)
            self._actions[action]()
            return True
        if key == "esc":
            actions.back(self._state)
        elif key == "tab":
            actions.toggle_home_panel(self._state)
        elif key in _MOVES:
            actions.move_selection(self._state, _MOVES[key])
        elif key == "enter":
            actions.activate_selection(self._state)
        return True

    def _handle_input(self, key: str) -> None:
        text = self._state.input_text
        if key == "esc":
            actions.back(self._state)
        elif key == "enter":
            actions.search(self._state, text)
        elif key == "backspace":
            self._state.set_input_text(text[:-1])
        elif key == "space":
            self._state.set_input_text(text + " ")
        elif len(key) == 1:
            self._state.set_input_text(text + key)

    def _next_page(self) -> None:
        resource = actions.resource_in_view(self._state)
        if resource is not None:
            actions.next_page(self._state, resource)

    def _previous_page(self) -> None:
        resource = actions.resource_in_view(self._state)
        if resource is not None:
            actions.previous_page(self._state, resource)


__all__ = ["KeyHandler", "normalize_key"]
