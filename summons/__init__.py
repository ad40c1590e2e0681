#!/usr/bin/env python3

"A small & Pythonic command dispatcher.  Summon your commands from the command-line!"
__version__ = "0.1.0"


# please leave this copyright notice in binary distributions.
license = """
summons/__init__.py
part of the Summons software package
Copyright 2023 by the Summons authors
All rights reserved.

Permission is hereby granted, free of charge, to any person obtaining a
copy of this software and associated documentation files (the "Software"),
to deal in the Software without restriction, including without limitation
the rights to use, copy, modify, merge, publish, distribute, sublicense,
and/or sell copies of the Software, and to permit persons to whom the
Software is furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included
in all copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT.
IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM,
DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT,
TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE
OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.
"""


import big.all as big
from big.itertools import PushbackIterator
import builtins
import enum
import inspect
from os.path import basename
import shlex
import sys
import typing

from . import text


POSITIONAL_ONLY = inspect.Parameter.POSITIONAL_ONLY
POSITIONAL_OR_KEYWORD = inspect.Parameter.POSITIONAL_OR_KEYWORD
VAR_POSITIONAL = inspect.Parameter.VAR_POSITIONAL
KEYWORD_ONLY = inspect.Parameter.KEYWORD_ONLY
VAR_KEYWORD = inspect.Parameter.VAR_KEYWORD
empty = inspect.Parameter.empty


AnnotatedType = type(typing.Annotated[int, str])

def dereference_annotated(annotation):
    """
    Annotated[str, Point] means "convert this parameter
    the way you'd convert a Point".  The last metadata
    entry wins.
    """
    if isinstance(annotation, AnnotatedType):
        return annotation.__metadata__[-1]
    return annotation


def type_name(t):
    return getattr(t, "__name__", None) or repr(t)


##
## Errors.
##
## Every error Summons reports at dispatch time has a "kind".
## The kind's value doubles as the process exit status
## used by Summons.main().  (Zero is reserved for success.)
##

class ErrorKind(enum.IntEnum):
    USAGE = 2
    UNKNOWN_COMMAND = 3
    INSUFFICIENT_ARGUMENTS = 4
    CONVERSION_FAILURE = 5
    UNKNOWN_TYPE = 6


class SummonsBaseException(Exception):
    kind = None

class ConfigurationError(SummonsBaseException):
    """
    Raised when the Summons API is used improperly.
    """
    pass

class UnknownTypeError(ConfigurationError):
    """
    Raised at dispatch time when a command declares a
    parameter type nobody registered a converter for.

    It's a ConfigurationError because the command-line
    can't fix it; the program has to.
    """
    kind = ErrorKind.UNKNOWN_TYPE

    def __init__(self, type):
        self.type = type
        super().__init__(f"no converter registered for type {type_name(type)}")


class UsageError(SummonsBaseException):
    """
    Raised when Summons processes an invalid command-line.
    """
    kind = ErrorKind.USAGE

class UnknownCommandError(UsageError):
    kind = ErrorKind.UNKNOWN_COMMAND

    def __init__(self, name):
        self.name = name
        super().__init__(f"invalid command: {name}")

class InsufficientArgumentsError(UsageError):
    kind = ErrorKind.INSUFFICIENT_ARGUMENTS

    def __init__(self, name, expected, got):
        self.name = name
        self.expected = expected
        self.got = got
        s = "" if expected == 1 else "s"
        super().__init__(f"not enough arguments for {name}: expected {expected} argument{s}, got {got}")

class ConversionError(UsageError):
    kind = ErrorKind.CONVERSION_FAILURE

    def __init__(self, token, type, reason=None):
        self.token = token
        self.type = type
        message = f"invalid value {token!r}, must be {type_name(type)}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


##
## Converters.
##
## A converter is any callable that accepts exactly one
## string and returns a value.  The registry maps a "type
## identity" to its converter.  The type identity is
## whatever the command declared: almost always a class,
## but any hashable works (a string, an enum member...).
##
## Lookup happens at dispatch time, not at registration
## time.  So you can register a command using Point before
## you register the converter for Point.
##

default_converters = {
    int: int,
    float: float,
    complex: complex,
    str: str,
    }

class ConverterRegistry:
    def __init__(self, converters=default_converters):
        self.converters = dict(converters)

    def __repr__(self):
        names = ", ".join(type_name(t) for t in self.converters)
        return f"<{self.__class__.__name__} [{names}]>"

    def __contains__(self, type):
        return type in self.converters

    def __len__(self):
        return len(self.converters)

    def register(self, type, converter):
        if not callable(converter):
            raise ConfigurationError(f"converter for {type_name(type)} must be callable, not {converter!r}")
        self.converters[type] = converter

    def lookup(self, type):
        return self.converters.get(type)

    def convert(self, type, token):
        converter = self.converters.get(type)
        if converter is None:
            raise UnknownTypeError(type)
        try:
            return converter(token)
        except ValueError as e:
            raise ConversionError(token, type, str(e) or None) from e


def split(*separators, strip=False):
    """
    Converter factory.  Returns a converter that splits
    its one string argument on any of separators and
    returns the pieces as a list of strings.

    If you don't specify any separators, splits on
    whitespace.

        app.add_converter(Coordinates, split(","))
    """
    if not all((s and isinstance(s, str)) for s in separators):
        raise ConfigurationError(f"split(): every separator must be a non-empty string, got {separators!r}")
    if not separators:
        separators = None
    def split(s):
        return list(big.multisplit(s, separators, strip=strip))
    return split


##
## Commands.
##

def _signature_types(callable):
    """
    Computes the type identities for every positional
    parameter of callable, in order.

    For each parameter:
        if there's an annotation, use the annotation.
        elif there's a default (neither empty nor None),
            use type(default).
        else use str.
    """
    try:
        signature = inspect.signature(callable)
    except (TypeError, ValueError):
        raise ConfigurationError(f"can't compute signature for {callable!r}, please specify types explicitly")

    types = []
    for parameter in signature.parameters.values():
        if parameter.kind in (POSITIONAL_ONLY, POSITIONAL_OR_KEYWORD):
            annotation = dereference_annotated(parameter.annotation)
            if annotation is empty:
                if parameter.default in (None, empty):
                    annotation = str
                else:
                    annotation = type(parameter.default)
            types.append(annotation)
            continue
        if parameter.kind == VAR_POSITIONAL:
            raise ConfigurationError(f"{type_name(callable)}: *{parameter.name} isn't supported, commands take a fixed number of arguments")
        if (parameter.kind == KEYWORD_ONLY) and (parameter.default is empty):
            raise ConfigurationError(f"{type_name(callable)}: keyword-only parameter {parameter.name} must have a default value")
        # **kwargs, and keyword-only parameters with defaults,
        # are never filled from the command-line.
    return tuple(types)


class Command:
    """
    The stored record for one registered command.

    types is the tuple of type identities for the
    command's positional parameters, computed once at
    registration.  The command's arity is len(types).
    """

    def __init__(self, name, description, callable, types, converters):
        self.name = name
        self.description = description
        self.callable = callable
        self.types = types
        self.arity = len(types)
        # not ours, we just use it.
        self.converters = converters

    def __repr__(self):
        types = ", ".join(type_name(t) for t in self.types)
        return f"<{self.__class__.__name__} {self.name!r} ({types})>"

    def sufficient(self, arguments):
        return len(arguments) >= self.arity

    def convert(self, arguments):
        # zip stops at the shorter of the two,
        # so extra arguments are never converted.
        convert = self.converters.convert
        return [convert(type, token) for type, token in zip(self.types, arguments)]

    def execute(self, arguments):
        if not self.sufficient(arguments):
            raise InsufficientArgumentsError(self.name, self.arity, len(arguments))
        values = self.convert(arguments)
        return self.callable(*values)


class CommandTable:
    def __init__(self, converters, *, redefine=True):
        self.converters = converters
        self.redefine = redefine
        self.commands = {}

    def __repr__(self):
        return f"<{self.__class__.__name__} {list(self.commands)!r}>"

    def __contains__(self, name):
        return name in self.commands

    def __len__(self):
        return len(self.commands)

    def register(self, name, description, callable, *, types=None):
        """
        Registers callable as the command name.

        If types is None, the type identities for each
        positional parameter come from callable's signature.
        Otherwise types is an iterable of type identities,
        one per argument callable should be called with.

        Registering a name a second time replaces the
        first command entirely, unless the table was
        created with redefine=False.

        Returns the new Command.
        """
        if not (name and isinstance(name, str)):
            raise ConfigurationError(f"command name must be a non-empty str, not {name!r}")
        if not builtins.callable(callable):
            raise ConfigurationError(f"command {name!r}: {callable!r} is not callable")
        if (not self.redefine) and (name in self.commands):
            raise ConfigurationError(f"command {name!r} is already defined")

        if types is None:
            types = _signature_types(callable)
        else:
            types = tuple(types)

        command = Command(name, description or "", callable, types, self.converters)
        self.commands[name] = command
        return command

    def lookup(self, name):
        return self.commands.get(name)

    def all(self):
        for name, command in self.commands.items():
            yield name, command.description


##
## Flags.
##
## A flag is a presence-only switch, like "--verbose".
## Flags are never associated with a command; you ask
## the registry about them after dispatching.
##
## You don't have to register a flag before the user
## can use it.  Observing an unregistered flag creates
## it, already set.  Registering is how you get a flag
## listed in the help text.
##

class FlagRegistry:
    def __init__(self, marker="--"):
        if not (marker and isinstance(marker, str)):
            raise ConfigurationError(f"flag marker must be a non-empty str, not {marker!r}")
        self.marker = marker
        self.flags = {}

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.flags!r}>"

    def __iter__(self):
        return iter(self.flags)

    def __contains__(self, name):
        return name in self.flags

    def is_flag(self, token):
        return token.startswith(self.marker)

    def register(self, name):
        if not (isinstance(name, str)
            and name.startswith(self.marker)
            and (len(name) > len(self.marker))):
            raise ConfigurationError(f"{name!r} is not a legal flag, flags must start with {self.marker!r}")
        self.flags.setdefault(name, False)

    def observe(self, name):
        self.flags[name] = True

    def is_set(self, name):
        return self.flags.get(name, False)

    def reset(self):
        for name in self.flags:
            self.flags[name] = False


##
## Help.
##

class HelpReporter:
    def __init__(self, summons):
        self.summons = summons

    def render(self):
        summons = self.summons
        indent = " " * summons.usage_indent
        marker = summons.flags.marker

        lines = [f"usage: {summons.name} <command> [arguments...] [{marker}flag...]"]
        lines.append("")
        lines.append("Available commands:")

        commands = list(summons.commands.all())
        if commands:
            name_width = max(len(name) for name, _ in commands) + 2
            description_width = max(summons.usage_max_columns - len(indent) - name_width, 20)
            for name, description in commands:
                description = text.presplit_textwrap(description.split(), description_width)
                merged = text.merge_columns(
                    (name, name_width, name_width),
                    (description, 0, description_width),
                    )
                lines.extend(indent + line for line in merged.split("\n"))

        flags = list(summons.flags)
        if flags:
            lines.append("")
            lines.append("Available flags:")
            lines.extend(indent + name for name in flags)

        return "\n".join(lines)


##
## Dispatch.
##

class Result:
    """
    What happened when Summons dispatched a command-line.

    command is the name of the command, or None.
    value is whatever the command function returned.
    error is the exception describing what went wrong, or None.
    help is the help text Summons printed, or None.
    """

    def __init__(self, *, command=None, arguments=(), flags=(), value=None, error=None, help=None, log=None):
        self.command = command
        self.arguments = list(arguments)
        self.flags = list(flags)
        self.value = value
        self.error = error
        self.help = help
        self.log = log

    def __repr__(self):
        kind = self.kind.name if self.kind else "ok"
        return f"<{self.__class__.__name__} {kind} command={self.command!r} value={self.value!r}>"

    @property
    def ok(self):
        return self.error is None

    @property
    def kind(self):
        if self.error is None:
            return None
        return self.error.kind

    @property
    def exit_code(self):
        if self.error is not None:
            return int(self.error.kind)
        return 0


class Dispatcher:
    """
    Dispatches one command-line.

    Create a fresh Dispatcher for every command-line;
    Summons.dispatch() does this for you.  The only
    state that outlives a dispatch is what's stored in
    the registries: flags observed stay set.
    """

    def __init__(self, summons):
        self.summons = summons
        self.log = big.Log()
        self.command = None
        self.arguments = []
        self.flags = []

    def __repr__(self):
        return f"<{self.__class__.__name__} command={self.command!r} arguments={self.arguments!r} flags={self.flags!r}>"

    def result(self, **kwargs):
        return Result(
            command=self.command,
            arguments=self.arguments,
            flags=self.flags,
            log=self.log,
            **kwargs)

    def show_help(self, message=None):
        if message:
            print(message)
        help = self.summons.render_help()
        print(help)
        return help

    def classify(self, iterator):
        is_flag = self.summons.flags.is_flag
        observe = self.summons.flags.observe
        for token in iterator:
            if is_flag(token):
                self.log(f"flag {token}")
                observe(token)
                self.flags.append(token)
            else:
                self.arguments.append(token)

    def __call__(self, tokens):
        summons = self.summons
        tokens = list(tokens)
        self.log(f"dispatch {shlex.join(tokens)}")

        if not tokens:
            self.log("no command specified")
            help = self.show_help()
            return self.result(error=UsageError("no command specified"), help=help)

        if len(tokens) == 1:
            if summons.support_help and (tokens[0] in ("-h", "--help")):
                return self.result(help=self.show_help())
            if summons.support_version and (tokens[0] in ("-v", "--version")):
                summons.print_version()
                return self.result()

        iterator = PushbackIterator(tokens)
        self.command = next(iterator)

        self.log.enter("classify")
        self.classify(iterator)
        self.log.exit()

        command = summons.commands.lookup(self.command)
        if not command:
            error = UnknownCommandError(self.command)
            self.log(str(error))
            help = self.show_help(str(error))
            return self.result(error=error, help=help)

        if not command.sufficient(self.arguments):
            error = InsufficientArgumentsError(command.name, command.arity, len(self.arguments))
            self.log(str(error))
            help = self.show_help(str(error))
            return self.result(error=error, help=help)

        if len(self.arguments) > command.arity:
            ignored = self.arguments[command.arity:]
            self.log(f"ignoring extra arguments {shlex.join(ignored)}")

        self.log.enter(f"execute {command.name}")
        try:
            value = command.execute(self.arguments)
        except (UnknownTypeError, ConversionError) as e:
            self.log(str(e))
            self.log.exit()
            return self.result(error=e)
        self.log.exit()
        self.log("dispatch complete")
        return self.result(value=value)


##
## The main object you'll interact with.
##

class Summons:
    """
    A Summons object holds everything you register:
    commands, converters, and flags.

    Summons objects are independent of each other;
    there's no global state.  Summons doesn't do any
    locking, so if you share one between threads you
    must synchronize access yourself.
    """

    def __init__(self,
        name=None,
        *,
        flag_marker="--",

        # if true, a lone "-h" or "--help" prints help
        help=True,

        # if set to a non-empty string, a lone "-v"
        # or "--version" prints it
        version=None,

        # if false, registering the same command name
        # twice raises ConfigurationError.
        # if true, the second command replaces the first.
        redefine=True,

        usage_max_columns=80,
        usage_indent=2,
        ):
        self.name = name or basename(sys.argv[0])

        self.support_help = help
        self.support_version = version

        self.usage_max_columns = usage_max_columns
        self.usage_indent = usage_indent

        self.converters = ConverterRegistry()
        self.commands = CommandTable(self.converters, redefine=redefine)
        self.flags = FlagRegistry(flag_marker)
        self.help_reporter = HelpReporter(self)

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name!r} commands={list(self.commands.commands)!r}>"

    def add_command(self, name, description, callable, *, types=None):
        return self.commands.register(name, description, callable, types=types)

    def command(self, name=None, description=None, *, types=None):
        """
        Decorator.  Registers the decorated function as a command.

        name defaults to the function's name.  description
        defaults to the first line of the function's docstring.
        """
        def command(callable):
            nonlocal name, description
            if name is None:
                name = callable.__name__
            if description is None:
                description = inspect.getdoc(callable) or ""
                description = description.partition("\n")[0].strip()
            self.add_command(name, description, callable, types=types)
            return callable
        return command

    def add_converter(self, type, converter):
        self.converters.register(type, converter)

    def converter(self, type):
        """
        Decorator.  Registers the decorated function as the
        converter for type.
        """
        def converter(callable):
            self.add_converter(type, callable)
            return callable
        return converter

    def flag(self, *names):
        if not names:
            raise ConfigurationError("Summons.flag: no flags specified")
        for name in names:
            self.flags.register(name)

    def has_flag(self, name):
        return self.flags.is_set(name)

    def render_help(self):
        return self.help_reporter.render()

    def help(self):
        print(self.render_help())

    def print_version(self):
        print(self.support_version)

    def dispatcher(self):
        return Dispatcher(self)

    def dispatch(self, tokens):
        return self.dispatcher()(tokens)

    def main(self, args=None):
        if args is None:
            args = sys.argv[1:]
        result = self.dispatch(args)
        if isinstance(result.error, (UnknownTypeError, ConversionError)):
            print(f"error: {result.error}", file=sys.stderr)
        sys.exit(result.exit_code)
