"""
Control requests for Linux network block devices.

The request codes mirror `<linux/nbd.h>`. They all are `_IO(0xab, nr)`
requests, i.e., they carry no size or direction bits and pass their argument
by value. That rules out `fcntl.ioctl()`, which converts an integer argument
to a C `int` and hence cannot express sizes of 2 GiB or more. Instead, this
module calls the C library's `ioctl()` through `ctypes` and passes the
argument as an `unsigned long`, just like the kernel expects.
"""

from ctypes import CDLL, c_int, c_ulong, get_errno, sizeof
from ctypes.util import find_library
import enum
import errno
import functools
import logging
import os
from types import TracebackType
from typing import Self


__all__ = ('NbdRequest', 'ioctl', 'NbdDevice', 'set_size')


_logger = logging.getLogger(__name__)


NBD_IOCTL_TYPE = 0xab

MAX_ARGUMENT = 2 ** (8 * sizeof(c_ulong)) - 1


def _io(kind: int, nr: int) -> int:
    """Compute the code for an ioctl without data transfer."""
    return (kind << 8) | nr


class NbdRequest(enum.IntEnum):
    """The NBD control requests."""

    SET_SOCK = _io(NBD_IOCTL_TYPE, 0)
    SET_BLKSIZE = _io(NBD_IOCTL_TYPE, 1)
    SET_SIZE = _io(NBD_IOCTL_TYPE, 2)
    DO_IT = _io(NBD_IOCTL_TYPE, 3)
    CLEAR_SOCK = _io(NBD_IOCTL_TYPE, 4)
    CLEAR_QUE = _io(NBD_IOCTL_TYPE, 5)
    PRINT_DEBUG = _io(NBD_IOCTL_TYPE, 6)
    SET_SIZE_BLOCKS = _io(NBD_IOCTL_TYPE, 7)
    DISCONNECT = _io(NBD_IOCTL_TYPE, 8)
    SET_TIMEOUT = _io(NBD_IOCTL_TYPE, 9)
    SET_FLAGS = _io(NBD_IOCTL_TYPE, 10)

    @property
    def label(self) -> str:
        """The request's name as spelled in the kernel headers."""
        return f'NBD_{self.name}'


@functools.cache
def _libc() -> CDLL:
    name = find_library('c')
    if name is None:
        raise OSError(errno.ENOSYS, 'cannot find the C library')
    return CDLL(name, use_errno=True)


def ioctl(fd: int, request: int, argument: int = 0) -> None:
    """
    Issue the control request with the by-value argument. On failure, this
    function raises an `OSError` with the C library's error number. An
    argument too large for an `unsigned long` fails with `EINVAL` without
    reaching the kernel.
    """
    if not 0 <= argument <= MAX_ARGUMENT:
        raise OSError(errno.EINVAL, os.strerror(errno.EINVAL))

    retval = _libc().ioctl(c_int(fd), c_ulong(request), c_ulong(argument))
    if retval < 0:
        code = get_errno()
        raise OSError(code, os.strerror(code))


class NbdDevice:
    """
    A network block device opened for reading and writing. Instances are
    context managers: Entering the context opens the device node and leaving
    it closes the device node again, no matter how the context is left.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._fd: None | int = None

    @property
    def fd(self) -> int:
        if self._fd is None:
            raise ValueError(f'device "{self._path}" is not open')
        return self._fd

    def open(self) -> None:
        if self._fd is not None:
            return
        _logger.info('opening device "%s"', self._path)
        self._fd = os.open(self._path, os.O_RDWR)

    def close(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        _logger.info('closing device "%s"', self._path)
        os.close(fd)

    def set_size(self, size: int) -> None:
        """Set the device's logical size in bytes."""
        _logger.info(
            'issuing %s (0x%04x) with size %d on "%s"',
            NbdRequest.SET_SIZE.label, NbdRequest.SET_SIZE, size, self._path
        )
        ioctl(self.fd, NbdRequest.SET_SIZE, size)

    def __enter__(self) -> Self:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f'NbdDevice({self._path!r})'


def set_size(path: str, size: int) -> None:
    """Open the device at the path, set its size, and close it again."""
    with NbdDevice(path) as device:
        device.set_size(size)
