# fzterm/core/Options.py
"""Options Module
==================
Typed settings of one finder session.

Settings are layered: the embedded defaults, then the user's ``config.toml``
(both merged by `fzterm.utils.utils.load_config`), then the command line.
`Options.from_config()` reads the merged configuration and `apply_args()`
overlays whatever was given on the command line. Any invalid value raises
`OptionsError`.
"""

import argparse
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from fzterm.core.errors import OptionsError
from fzterm.ui.KeyBinder import decode_keystring, parse_bindings, parse_expect


logger = logging.getLogger(__name__)

THEMES = ("dark", "16", "bw")
CASE_MODES = ("smart", "ignore", "respect")


def split_bind_spec(spec: str) -> dict[str, str]:
    """Parses ``KEY:ACTION[,KEY:ACTION...]``.

    Commas inside ``execute(...)`` / ``execute[...]`` do not separate bindings,
    and a leading ":" or "," is taken as the key itself.
    """
    pairs: list[str] = []
    depth = 0
    current = ""
    for ch in spec:
        if ch in "([":
            depth += 1
        elif ch in ")]" and depth > 0:
            depth -= 1
        if ch == "," and depth == 0 and current and not current.endswith(":"):
            pairs.append(current)
            current = ""
        else:
            current += ch
    if current:
        pairs.append(current)

    bindings: dict[str, str] = {}
    for pair in pairs:
        sep = pair.find(":", 1)
        if sep < 0:
            raise OptionsError(f"invalid key binding: {pair!r}")
        bindings[pair[:sep]] = pair[sep + 1:]
    return bindings


@dataclass
class Options:
    prompt: str = "> "
    query: str = ""
    multi: bool = False
    sort: bool = True
    toggle_sort: bool = False
    toggle_sort_key: Optional[int] = None
    reverse: bool = False
    inline_info: bool = False
    hscroll: bool = True
    cycle: bool = False
    mouse: bool = True
    print_query: bool = False
    expect: list[int] = field(default_factory=list)
    theme: str = "dark"
    black: bool = False
    history: Optional[str] = None
    history_size: int = 1000
    default_command: str = ""
    case: str = "smart"
    bindings: dict[str, str] = field(default_factory=dict)
    colors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "Options":
        """Builds options from the merged configuration dictionary.

        Raises:
            OptionsError: On an unusable value.
        """
        finder = config.get("finder", {})
        opts = cls(
            prompt=str(finder.get("prompt", "> ")),
            query=str(finder.get("query", "")),
            multi=bool(finder.get("multi", False)),
            sort=bool(finder.get("sort", True)),
            reverse=bool(finder.get("reverse", False)),
            inline_info=bool(finder.get("inline_info", False)),
            hscroll=bool(finder.get("hscroll", True)),
            cycle=bool(finder.get("cycle", False)),
            mouse=bool(finder.get("mouse", True)),
            print_query=bool(finder.get("print_query", False)),
            theme=str(finder.get("theme", "dark")),
            black=bool(finder.get("black", False)),
            history=finder.get("history") or None,
            default_command=str(finder.get("default_command", "")),
            case=str(finder.get("case", "smart")),
            bindings={str(k): str(v) for k, v in config.get("keybindings", {}).items()},
            colors={str(k): str(v) for k, v in config.get("colors", {}).items()},
        )
        try:
            opts.history_size = int(finder.get("history_size", 1000))
        except (TypeError, ValueError):
            raise OptionsError(f"invalid history_size: {finder.get('history_size')!r}") from None

        opts._set_expect(str(finder.get("expect", "")))
        opts._set_toggle_sort(str(finder.get("toggle_sort", "")))
        opts.validate()
        return opts

    def _set_expect(self, spec: str) -> None:
        try:
            self.expect = parse_expect(spec)
        except ValueError as e:
            raise OptionsError(f"invalid expect keys {spec!r}: {e}") from None

    def _set_toggle_sort(self, spec: str) -> None:
        if not spec:
            return
        try:
            self.toggle_sort_key = decode_keystring(spec)
        except ValueError as e:
            raise OptionsError(f"invalid toggle-sort key {spec!r}: {e}") from None
        self.toggle_sort = True

    def validate(self) -> None:
        if self.theme not in THEMES:
            raise OptionsError(f"unknown color theme {self.theme!r} (choose from {', '.join(THEMES)})")
        if self.case not in CASE_MODES:
            raise OptionsError(f"unknown case mode {self.case!r}")
        if self.history_size < 1:
            raise OptionsError("history size must be at least 1")

    def apply_args(self, args: argparse.Namespace) -> "Options":
        """Returns a copy with the command line values laid over this one."""
        opts = replace(self, bindings=dict(self.bindings), expect=list(self.expect))
        for name in (
            "prompt", "query", "multi", "sort", "reverse", "inline_info", "hscroll",
            "cycle", "mouse", "print_query", "history",
        ):
            value = getattr(args, name, None)
            if value is not None:
                setattr(opts, name, value)

        if getattr(args, "color", None):
            opts.theme = args.color
        if getattr(args, "expect", None) is not None:
            opts._set_expect(args.expect)
        if getattr(args, "toggle_sort", None):
            opts._set_toggle_sort(args.toggle_sort)
        for spec in getattr(args, "bind", None) or []:
            cli_bindings = split_bind_spec(spec)
            try:
                parse_bindings(cli_bindings, strict=True)
            except ValueError as e:
                raise OptionsError(str(e)) from None
            opts.bindings.update(cli_bindings)

        opts.validate()
        logger.debug("Effective options: %s", opts)
        return opts
