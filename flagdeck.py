#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.13"
# dependencies = ["prompt_toolkit>=3.0"]
# ///
"""Flagdeck - Interactive command builder for CLI help text.

Reads the `--help` output of a command-line program, turns its `Usage:` line and
`Options:` block into an editable set of parameters, and runs the program with
the values filled in through a full-screen terminal editor.

Parameter kinds:
- Arguments: value-bearing keys that the usage line requires (always passed).
- Options: value-bearing keys that are optional (passed when non-empty).
- Flags: keys without a value (passed when toggled on).

Storage model:
- Optional settings live in `~/.config/flagdeck/config.json`.
- `FLAGDECK_HOME` environment variable overrides the storage location.
- `FLAGDECK_<SETTING>` environment variables override individual settings.

Usage:
    flagdeck edit greeter.exe                      # Edit and run greeter.exe
    flagdeck edit python greeter.py                # Help is read from `python greeter.py --help`
    flagdeck edit --print greeter.exe              # Print the built command instead of running it
    flagdeck parse greeter.exe                     # Print the parsed parameters as JSON
    flagdeck parse --help-file help.txt            # Parse saved help text ("-" reads stdin)
"""

from __future__ import annotations

import argparse
import json
import os
import re
import shlex
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Final

from prompt_toolkit import Application
from prompt_toolkit.input import Input
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import HSplit, Layout, VSplit, Window, WindowAlign
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.output import Output
from prompt_toolkit.widgets import Frame

# Constants
DEFAULT_HELP_FLAG: Final[str] = "--help"
DEFAULT_HELP_TIMEOUT_S: Final[int] = 15

OPTIONS_MARKER: Final[str] = "Options:"
USAGE_MARKER: Final[str] = "Usage:"

# -n, --name <NAME>  Name of the person to greet [default: Me]
OPTION_LINE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\s*(?P<short_key>-\w(?![\w-]))?[ ,]*"
    r"(?P<long_key>--\w+(?:-\w+)*)?\s*"
    r"(?:<(?P<name>[^<>]+)>)?"
    r"(?P<rest>.*)"
)
DEFAULT_VALUE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\[default:\s*(?P<value>[^\]]*)\]"
)
# A dash only starts a key at a token boundary, so `greeter-cli` holds no key.
USAGE_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?<![\w-])--?\w+(?:-\w+)*")


class HelpCommandError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class ParsedArgument:
    """A value-bearing line of the options block."""

    key: str
    name: str
    description: str | None = None
    default: str | None = None


@dataclass(frozen=True, slots=True)
class ParsedFlag:
    """A line of the options block without a value placeholder."""

    key: str
    description: str | None = None


ParsedParameter = ParsedArgument | ParsedFlag


@dataclass(frozen=True, slots=True)
class Usage:
    """Program name and keys found on the usage line."""

    program: str
    keys: tuple[str, ...] = ()


@dataclass(slots=True)
class Argument:
    """Editable value-bearing parameter, used for both arguments and options."""

    key: str  # e.g., "--count" or "-n"
    name: str  # placeholder from the help text, e.g., "COUNT"
    description: str | None = None
    value: str = ""


@dataclass(slots=True)
class Flag:
    """Editable presence-only parameter."""

    key: str
    description: str | None = None
    set: bool = False


@dataclass(slots=True)
class Parameters:
    """Everything parsed from one help text, in textual order per kind."""

    program: str
    arguments: list[Argument] = field(default_factory=list)
    options: list[Argument] = field(default_factory=list)
    flags: list[Flag] = field(default_factory=list)
    convention: str = "clap"


# ---------------------------------------------------------------------------
# Help text parsing
# ---------------------------------------------------------------------------


def find_options_block(help_text: str) -> str | None:
    """Return the help text from the first `Options:` marker to the end."""
    index = help_text.find(OPTIONS_MARKER)
    if index < 0:
        return None
    return help_text[index:]


def find_usage_line(help_text: str) -> str | None:
    """Return the first line starting with `Usage:`."""
    for line in help_text.splitlines():
        if line.startswith(USAGE_MARKER):
            return line
    return None


def parse_option_line(line: str) -> ParsedParameter | None:
    """
    Parse a single line of an options block.

    Two shapes are recognized:
    - Value-bearing: `-n, --name <NAME>  Name of the person [default: Me]`
    - Flag: `-h, --help  Print help`

    The long key wins over the short key. Lines without any key return None.
    """
    match = OPTION_LINE_PATTERN.match(line)
    if match is None:
        return None

    key = match.group("long_key") or match.group("short_key")
    if not key:
        return None

    rest = match.group("rest") or ""
    default: str | None = None
    default_match = DEFAULT_VALUE_PATTERN.search(rest)
    if default_match:
        default = default_match.group("value")
        rest = rest[: default_match.start()] + rest[default_match.end() :]
    description = " ".join(rest.split()) or None

    name = match.group("name")
    if name:
        return ParsedArgument(
            key=key, name=name, description=description, default=default
        )
    return ParsedFlag(key=key, description=description)


def parse_options_block(block: str) -> list[ParsedParameter] | None:
    """Parse every line below the `Options:` header; None if nothing parsed."""
    parsed: list[ParsedParameter] = []
    for line in block.splitlines()[1:]:  # skip the "Options:" line
        parameter = parse_option_line(line)
        if parameter is not None:
            parsed.append(parameter)
    return parsed or None


def parse_usage_line(line: str) -> Usage | None:
    """
    Parse the program name and the keys listed on a usage line.

    Every key-shaped token counts, including ones inside `[...]` groups:
    bracket nesting is not interpreted.
    """
    _, marker, rest = line.partition(USAGE_MARKER)
    if not marker:
        return None
    tokens = rest.split(maxsplit=1)
    if not tokens:
        return None
    program = tokens[0]
    remainder = tokens[1] if len(tokens) > 1 else ""
    keys = tuple(m.group(0) for m in USAGE_KEY_PATTERN.finditer(remainder))
    return Usage(program=program, keys=keys)


def classify_parameters(
    *, parsed: list[ParsedParameter], usage: Usage, convention: str = "clap"
) -> Parameters:
    """Sort parsed lines into arguments, options and flags."""
    required = set(usage.keys)
    result = Parameters(program=usage.program, convention=convention)
    for parameter in parsed:
        if isinstance(parameter, ParsedArgument):
            argument = Argument(
                key=parameter.key,
                name=parameter.name,
                description=parameter.description,
                value=parameter.default or "",
            )
            if parameter.key in required:
                result.arguments.append(argument)
            else:
                result.options.append(argument)
        else:
            result.flags.append(
                Flag(key=parameter.key, description=parameter.description)
            )
    return result


def parse_clap_help_text(help_text: str) -> Parameters | None:
    """Parse help text laid out the way clap prints it."""
    options_block = find_options_block(help_text)
    if options_block is None:
        return None
    parsed = parse_options_block(options_block)
    if parsed is None:
        return None
    usage_line = find_usage_line(help_text)
    if usage_line is None:
        return None
    usage = parse_usage_line(usage_line)
    if usage is None:
        return None
    return classify_parameters(parsed=parsed, usage=usage, convention="clap")


# Tried in order; the first parser returning a result wins.
HELP_PARSERS: Final[tuple[Callable[[str], Parameters | None], ...]] = (
    parse_clap_help_text,
)


def parse_help_text(help_text: str) -> Parameters | None:
    for parse in HELP_PARSERS:
        parameters = parse(help_text)
        if parameters is not None:
            return parameters
    return None


def parameters_payload(parameters: Parameters) -> dict:
    """JSON-friendly view of parsed parameters."""
    return {
        "program": parameters.program,
        "convention": parameters.convention,
        "arguments": [_argument_payload(a) for a in parameters.arguments],
        "options": [_argument_payload(o) for o in parameters.options],
        "flags": [
            {"key": f.key, "description": f.description, "set": f.set}
            for f in parameters.flags
        ],
    }


def _argument_payload(argument: Argument) -> dict:
    return {
        "key": argument.key,
        "name": argument.name,
        "description": argument.description,
        "value": argument.value,
    }


# ---------------------------------------------------------------------------
# Command synthesis
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Invocation:
    """A program name plus the argument tokens to run it with."""

    program: str
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def display(self) -> str:
        return shlex.join(self.argv)


def build_invocation(parameters: Parameters) -> Invocation:
    """
    Build the command line for the current parameter values.

    Tokens are emitted as options, then flags, then arguments, whatever the
    order of the help text. Options with an empty value and flags that are
    not set are left out; arguments are always passed.
    """
    tokens: list[str] = []
    for option in parameters.options:
        if option.value:
            tokens.extend((option.key, option.value))
    for flag in parameters.flags:
        if flag.set:
            tokens.append(flag.key)
    for argument in parameters.arguments:
        tokens.extend((argument.key, argument.value))
    return Invocation(program=parameters.program, args=tuple(tokens))


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class Section(Enum):
    ARGUMENTS = "arguments"
    FLAGS = "flags"
    OPTIONS = "options"


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


SECTION_CYCLE: Final[tuple[Section, ...]] = (
    Section.ARGUMENTS,
    Section.FLAGS,
    Section.OPTIONS,
)
TEXT_SECTIONS: Final[frozenset[Section]] = frozenset(
    {Section.ARGUMENTS, Section.OPTIONS}
)
SECTION_TITLES: Final[dict[Section, str]] = {
    Section.ARGUMENTS: "Arguments",
    Section.FLAGS: "Flags",
    Section.OPTIONS: "Options",
}


@dataclass(frozen=True, slots=True)
class Move:
    direction: Direction


@dataclass(frozen=True, slots=True)
class TextEdit:
    char: str


@dataclass(frozen=True, slots=True)
class RemoveText:
    pass


@dataclass(frozen=True, slots=True)
class Toggle:
    pass


@dataclass(frozen=True, slots=True)
class Run:
    pass


@dataclass(frozen=True, slots=True)
class Quit:
    pass


Message = Move | TextEdit | RemoveText | Toggle | Run | Quit


@dataclass(slots=True)
class Session:
    """Parameters being edited plus the selection cursor.

    The cursor is a section and an index into that section's list. The index
    stays below the list length whenever the list is non-empty.
    """

    parameters: Parameters
    section: Section = Section.ARGUMENTS
    index: int = 0
    run: bool = False  # submit requested
    exit: bool = False  # quit requested

    @classmethod
    def start(cls, parameters: Parameters) -> Session:
        session = cls(parameters=parameters)
        if not session.is_available(Section.ARGUMENTS):
            for section in SECTION_CYCLE:
                if session.is_available(section):
                    session.section = section
                    break
        return session

    @property
    def finished(self) -> bool:
        return self.run or self.exit

    def section_items(self, section: Section) -> list[Argument] | list[Flag]:
        if section is Section.ARGUMENTS:
            return self.parameters.arguments
        if section is Section.FLAGS:
            return self.parameters.flags
        return self.parameters.options

    def is_available(self, section: Section) -> bool:
        return len(self.section_items(section)) > 0

    def selected(self) -> Argument | Flag | None:
        items = self.section_items(self.section)
        if 0 <= self.index < len(items):
            return items[self.index]
        return None

    def selected_index(self, section: Section) -> int | None:
        if section is self.section and self.is_available(section):
            return self.index
        return None

    def selected_description(self) -> str | None:
        entry = self.selected()
        if entry is None:
            return None
        return display_description(entry)


def update(session: Session, message: Message) -> None:
    """Apply one input message to the session in place."""
    if isinstance(message, Move):
        _move(session, message.direction)
    elif isinstance(message, TextEdit):
        _edit_text(session, message.char)
    elif isinstance(message, RemoveText):
        _remove_text(session)
    elif isinstance(message, Toggle):
        _toggle_flag(session)
    elif isinstance(message, Run):
        session.run = True
    elif isinstance(message, Quit):
        session.exit = True


def _move(session: Session, direction: Direction) -> None:
    if direction is Direction.RIGHT:
        _step_section(session, 1)
        return
    if direction is Direction.LEFT:
        _step_section(session, -1)
        return

    length = len(session.section_items(session.section))
    if length == 0:
        return
    if direction is Direction.DOWN:
        session.index = (session.index + 1) % length
    elif session.index == 0:
        session.index = length - 1
    else:
        session.index -= 1


def _step_section(session: Session, step: int) -> None:
    # Wraps back onto the current section when it is the only non-empty one.
    position = SECTION_CYCLE.index(session.section)
    for offset in range(1, len(SECTION_CYCLE) + 1):
        candidate = SECTION_CYCLE[(position + step * offset) % len(SECTION_CYCLE)]
        if session.is_available(candidate):
            session.section = candidate
            session.index = 0
            return


def _edit_text(session: Session, char: str) -> None:
    if session.section not in TEXT_SECTIONS:
        return
    entry = session.selected()
    if isinstance(entry, Argument):
        entry.value += char


def _remove_text(session: Session) -> None:
    if session.section not in TEXT_SECTIONS:
        return
    entry = session.selected()
    if isinstance(entry, Argument):
        entry.value = entry.value[:-1]


def _toggle_flag(session: Session) -> None:
    if session.section is not Section.FLAGS:
        return
    entry = session.selected()
    if isinstance(entry, Flag):
        entry.set = not entry.set


# ---------------------------------------------------------------------------
# Terminal editor
# ---------------------------------------------------------------------------

NAMED_KEYS: Final[dict[str, Message]] = {
    "up": Move(Direction.UP),
    "down": Move(Direction.DOWN),
    "left": Move(Direction.LEFT),
    "right": Move(Direction.RIGHT),
    "enter": Run(),
    "c-q": Quit(),
    "c-c": Quit(),
}


def translate_key(key: str, section: Section) -> Message | None:
    """Map a prompt_toolkit key name or typed character to a message.

    Typing and backspace only apply to Arguments/Options; space toggles Flags.
    """
    if key in NAMED_KEYS:
        return NAMED_KEYS[key]
    if key == "backspace":
        return RemoveText() if section in TEXT_SECTIONS else None
    if key == " " and section is Section.FLAGS:
        return Toggle()
    if len(key) == 1 and key.isprintable() and section in TEXT_SECTIONS:
        return TextEdit(key)
    return None


def display_entry(entry: Argument | Flag) -> str:
    if isinstance(entry, Flag):
        checkbox = "[x]" if entry.set else "[ ]"
        return f"{checkbox} {entry.key}"
    return f"{entry.name}: {entry.value}"


def display_description(entry: Argument | Flag) -> str | None:
    if entry.description is None:
        return None
    label = entry.key if isinstance(entry, Flag) else entry.name
    return f"{label}: {entry.description}"


def section_fragments(session: Session, section: Section) -> list[tuple[str, str]]:
    """Formatted text for one column; the selected row is highlighted."""
    selected = session.selected_index(section)
    fragments: list[tuple[str, str]] = [("bold", f"{SECTION_TITLES[section]}\n\n")]
    for idx, entry in enumerate(session.section_items(section)):
        text = display_entry(entry)
        if idx == selected:
            fragments.append(("reverse", f">>{text}\n"))
        else:
            fragments.append(("", f"  {text}\n"))
    return fragments


def footer_fragments() -> list[tuple[str, str]]:
    return [
        ("", " Run "),
        ("fg:ansiblue", "<Enter>"),
        ("", " Toggle "),
        ("fg:ansiblue", "<Space>"),
        ("", " Quit "),
        ("fg:ansiblue", "<Ctrl+Q> "),
    ]


def build_key_bindings(session: Session) -> KeyBindings:
    """Route key presses through `translate_key` into `update`."""
    key_bindings = KeyBindings()

    def _dispatch(event, key: str) -> None:
        message = translate_key(key, session.section)
        if message is None:
            return
        update(session, message)
        if session.finished:
            event.app.exit(result=session)

    def _bind(key: str) -> None:
        @key_bindings.add(key)
        def _handle(event) -> None:
            _dispatch(event, key)

    for key in (*NAMED_KEYS, "backspace"):
        _bind(key)

    @key_bindings.add(Keys.Any)
    def _handle_character(event) -> None:
        _dispatch(event, event.data)

    return key_bindings


def _section_window(session: Session, section: Section) -> Window:
    return Window(
        FormattedTextControl(lambda: section_fragments(session, section)),
        wrap_lines=True,
    )


def build_application(
    session: Session,
    *,
    app_input: Input | None = None,
    app_output: Output | None = None,
) -> Application:
    columns = VSplit(
        [
            _section_window(session, Section.ARGUMENTS),
            Window(width=1, char="│"),
            _section_window(session, Section.FLAGS),
            Window(width=1, char="│"),
            _section_window(session, Section.OPTIONS),
        ]
    )
    body = HSplit(
        [
            columns,
            Window(height=1, char="─"),
            Window(
                FormattedTextControl(lambda: session.selected_description() or ""),
                height=2,
                wrap_lines=True,
            ),
            Window(
                FormattedTextControl(footer_fragments()),
                height=1,
                align=WindowAlign.CENTER,
            ),
        ]
    )
    return Application(
        layout=Layout(Frame(body, title=session.parameters.program)),
        key_bindings=build_key_bindings(session),
        full_screen=True,
        input=app_input,
        output=app_output,
    )


def edit_parameters(
    parameters: Parameters,
    *,
    app_input: Input | None = None,
    app_output: Output | None = None,
) -> Session:
    """Run the full-screen editor until the user submits or quits."""
    session = Session.start(parameters)
    build_application(session, app_input=app_input, app_output=app_output).run()
    return session


# ---------------------------------------------------------------------------
# Configuration and diagnostics
# ---------------------------------------------------------------------------


def flagdeck_home() -> Path:
    """Return Flagdeck's home directory.

    Defaults to `~/.config/flagdeck`, overridable via `FLAGDECK_HOME`.
    """
    raw = os.environ.get("FLAGDECK_HOME")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".config" / "flagdeck"


def flagdeck_config_path() -> Path:
    return flagdeck_home() / "config.json"


def _load_config() -> dict:
    path = flagdeck_config_path()
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError:
        return {}
    if isinstance(payload, dict):
        return payload
    return {}


def _config_get(*, key: str) -> object | None:
    # Environment variables override config.json, e.g. `FLAGDECK_HELP_FLAG=-h`.
    env_key = f"FLAGDECK_{key.upper()}"
    env_val = os.environ.get(env_key)
    if env_val is not None and env_val.strip() != "":
        return env_val
    return _load_config().get(key)


def _setting_int(*, config_key: str, default: int) -> int:
    cfg = _config_get(key=config_key)
    if cfg is None:
        return default
    try:
        return int(cfg)
    except (TypeError, ValueError):
        return default


def _setting_str(*, config_key: str, default: str) -> str:
    cfg = _config_get(key=config_key)
    if isinstance(cfg, str) and cfg.strip():
        return cfg.strip()
    return default


def _verbose_level() -> int:
    raw = _config_get(key="verbose")
    if raw is None:
        return 0
    if isinstance(raw, bool):
        return 1 if raw else 0
    if isinstance(raw, int):
        if raw <= 0:
            return 0
        return 2 if raw > 1 else 1
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in {"", "0", "false", "no", "off"}:
            return 0
        if value in {"1", "true", "yes", "on", "basic"}:
            return 1
        return 2
    return 0


def _debug(message: str, *, level: int = 1) -> None:
    if _verbose_level() >= level:
        print(f"[flagdeck] {message}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Process execution
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def build_help_command(
    args: list[str], *, help_flag: str = DEFAULT_HELP_FLAG
) -> list[str]:
    """`python greeter.py` becomes `python greeter.py --help`."""
    if not args:
        raise ValueError("No command given")
    return [*args, help_flag]


def get_help_text(
    args: list[str],
    *,
    help_flag: str = DEFAULT_HELP_FLAG,
    timeout_s: int = DEFAULT_HELP_TIMEOUT_S,
) -> str:
    """Run the command with its help flag and return what it printed."""
    cmd = build_help_command(args, help_flag=help_flag)
    _debug(f"help command: {shlex.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout_s,
        )
    except (FileNotFoundError, PermissionError) as e:
        raise HelpCommandError(f"Cannot run command: {cmd[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise HelpCommandError(f"Help command timed out after {timeout_s}s") from e

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise HelpCommandError(
            f"Failed to retrieve help text (exit {result.returncode}): "
            f"{stderr or 'no stderr'}"
        )

    # Some programs print their help on stderr.
    output = result.stdout or result.stderr
    if not output or not output.strip():
        raise HelpCommandError(f"No help output from: {shlex.join(cmd)}")
    _debug(f"help text chars: {len(output)}")
    if _verbose_level() > 1:
        print("[flagdeck] help text:", file=sys.stderr)
        print(output, file=sys.stderr)
    return output


def run_invocation(
    invocation: Invocation, *, timeout_s: int | None = None
) -> CommandResult:
    """Run the built command once and capture its output."""
    _debug(f"running: {invocation.display()}")
    try:
        result = subprocess.run(
            invocation.argv,
            capture_output=True,
            text=True,
            timeout=timeout_s,
        )
    except (FileNotFoundError, PermissionError):
        return CommandResult(
            returncode=127,
            stdout="",
            stderr=f"Cannot run command: {invocation.program}",
        )
    except subprocess.TimeoutExpired:
        return CommandResult(
            returncode=124,
            stdout="",
            stderr=f"Command timed out after {timeout_s}s",
        )
    _debug(f"exit: {result.returncode}")
    return CommandResult(
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _read_help_file(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).expanduser().read_text()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="flagdeck",
        description="Interactive command builder for CLI help text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="action")

    # edit command
    edit_p = subparsers.add_parser(
        "edit", help="Edit the parameters of a command and run it"
    )
    edit_p.add_argument(
        "--print",
        action="store_true",
        help="Print the built command instead of running it",
    )
    edit_p.add_argument(
        "--help-flag",
        help="Flag that makes the command print its help (e.g. --help-flag=-h)",
    )
    edit_p.add_argument(
        "command", nargs=argparse.REMAINDER, help="Command to read help from"
    )

    # parse command
    parse_p = subparsers.add_parser(
        "parse", help="Print the parameters parsed from a command's help as JSON"
    )
    parse_p.add_argument(
        "--help-file",
        help="Read help text from a file instead of running a command ('-' for stdin)",
    )
    parse_p.add_argument(
        "--help-flag",
        help="Flag that makes the command print its help (e.g. --help-flag=-h)",
    )
    parse_p.add_argument(
        "command", nargs=argparse.REMAINDER, help="Command to read help from"
    )

    args = parser.parse_args(argv)

    if args.action is None:
        parser.print_usage(sys.stderr)
        return 2

    help_flag = args.help_flag or _setting_str(
        config_key="help_flag", default=DEFAULT_HELP_FLAG
    )

    if args.action == "parse" and args.help_file:
        try:
            help_text = _read_help_file(args.help_file)
        except OSError as e:
            print(f"Cannot read help file: {e}", file=sys.stderr)
            return 1
        source = args.help_file
    else:
        if not args.command:
            print("Missing command", file=sys.stderr)
            return 2
        try:
            help_text = get_help_text(
                args.command,
                help_flag=help_flag,
                timeout_s=_setting_int(
                    config_key="help_timeout_s", default=DEFAULT_HELP_TIMEOUT_S
                ),
            )
        except HelpCommandError as e:
            print(str(e), file=sys.stderr)
            return 1
        source = shlex.join(args.command)

    parameters = parse_help_text(help_text)
    if parameters is None:
        print(f"Cannot interpret the help text of: {source}", file=sys.stderr)
        return 1
    _debug(
        f"parsed {parameters.convention} help: "
        f"{len(parameters.arguments)} arguments, "
        f"{len(parameters.options)} options, "
        f"{len(parameters.flags)} flags"
    )

    if args.action == "parse":
        print(json.dumps(parameters_payload(parameters), indent=2))
        return 0

    if args.action == "edit":
        session = edit_parameters(parameters)
        if not session.run:
            return 0

        invocation = build_invocation(session.parameters)
        if args.print:
            print(invocation.display())
            return 0

        timeout_s = _setting_int(config_key="command_timeout_s", default=0)
        result = run_invocation(invocation, timeout_s=timeout_s or None)
        if result.ok:
            if result.stdout:
                print(result.stdout, end="")
            return 0
        print(f"Command failed: {result.stderr.strip()}", file=sys.stderr)
        return result.returncode

    return 1


if __name__ == "__main__":
    sys.exit(main())
