"""
nbdsetsize's command line tool.
"""

import argparse
from collections.abc import Sequence
from contextlib import AbstractContextManager
import errno
import logging
import os
import sys
import traceback
from types import TracebackType

from .nbd import NbdDevice, NbdRequest
from .size import SizeError, parse_size


_logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------------------


class UserError(Exception):
    """
    An error indicating invalid user input or an unusable device. When code
    raises this error, it probably is *not* helpful to print an exception
    trace. The status is the tool's exit status.
    """

    status: int = 1


class UsageError(UserError):
    """An error indicating malformed command line arguments."""


class DeviceError(UserError):
    """
    An error indicating that the device driver failed a control request. The
    driver signals that it rejects the request's argument with `EINVAL`, which
    maps to a distinct exit status.
    """

    def __init__(self, label: str, cause: OSError) -> None:
        super().__init__(f'{label}: {cause.strerror}')
        self.errno = cause.errno

    @property
    def status(self) -> int:  # type: ignore[override]
        return 2 if self.errno == errno.EINVAL else 1


class user_error(AbstractContextManager['user_error']):
    """
    A context manager to turn one or more exceptions into a user error. If the
    context manager tries to exit with one of the listed exception types, it
    instead raises a `UserError` with the message. For an `OSError`, the
    message is followed by the error's description, in the manner of
    `perror()`.
    """

    def __init__(
        self,
        exc_types: type[BaseException] | Sequence[type[BaseException]],
        msg: str,
    ) -> None:
        if isinstance(exc_types, type):
            exc_types = (exc_types,)

        self._exc_types = tuple(exc_types)
        self._msg = msg

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        _: TracebackType | None,
    ) -> None:
        if exc_type is not None and issubclass(exc_type, self._exc_types):
            msg = self._msg
            if isinstance(exc_value, OSError) and exc_value.strerror:
                msg = f'{msg}: {exc_value.strerror}'
            raise UserError(msg) from exc_value


# --------------------------------------------------------------------------------------


def program_name(arguments: Sequence[str]) -> str:
    if not arguments or not arguments[0]:
        return 'nbdsetsize'
    name = os.path.basename(arguments[0])
    return 'nbdsetsize' if name == '__main__.py' else name


def configure_parser(prog: str = 'nbdsetsize') -> argparse.ArgumentParser:
    # There are no options, not even -h, and the parser only formats the usage.
    # Arguments are taken verbatim, so that a device path starting with a dash
    # is used as is.
    parser = argparse.ArgumentParser(
        prog=prog,
        usage='%(prog)s DEV SIZE',
        add_help=False,
    )
    parser.add_argument('device', metavar='DEV')
    parser.add_argument('size', metavar='SIZE')
    return parser


def parse_arguments(arguments: Sequence[str]) -> argparse.Namespace:
    if len(arguments) != 2:
        raise UsageError(f'expected 2 arguments but got {len(arguments)}')
    device, size = arguments
    return argparse.Namespace(device=device, size=size)


# --------------------------------------------------------------------------------------


def run(arguments: Sequence[str]) -> int:
    prog = program_name(arguments)
    parser = configure_parser(prog)

    logging.basicConfig(
        format='[%(levelname)s] %(name)s: %(message)s',
        level=logging.WARNING,
    )

    try:
        options = parse_arguments(arguments[1:])
    except UsageError as x:
        sys.stderr.write(parser.format_usage())
        _logger.debug('rejecting arguments: %s', x.args[0])
        return x.status

    try:
        return process(options)
    except UserError as x:
        sys.stderr.write(f'{x.args[0]}\n')
        return x.status
    except Exception as x:
        sys.stderr.write(
            'nbdsetsize encountered an unexpected error. For details, please see\n'
            'the exception trace below.\n'
        )
        sys.stderr.write(''.join(traceback.format_exception(x)))
        return 1


def process(options: argparse.Namespace) -> int:
    # ---------------------------------------------------------------- Parse size
    with user_error(SizeError, 'invalid size'):
        size = parse_size(options.size)
    _logger.info('parsed size "%s" as %d bytes', options.size, size)

    # ------------------------------------------------------- Open and set size
    device = NbdDevice(options.device)
    with user_error(OSError, 'open'):
        device.open()

    with device:
        try:
            device.set_size(size)
        except OSError as x:
            raise DeviceError(NbdRequest.SET_SIZE.label, x) from x

    # ---------------------------------------------------------------------- Done
    return 0
