"""
process_runner.py — PTY-attached child process
----------------------------------------------
Runs the server under a pseudo-terminal so it behaves as on an interactive
console. A reader thread delivers output chunks to ``on_output`` in arrival
order; once the PTY reports EOF it reaps the child and calls ``on_exit`` with
the return code. Writes to the single input stream are serialized.
"""

from __future__ import annotations
import errno
import fcntl
import os
import pty
import struct
import subprocess
import termios
import threading
from pathlib import Path
from typing import Callable, List, Optional

from .errors import SpawnError
from .logging_setup import get_logger

log = get_logger("mc.launcher.proc")

# wide enough that the server never wraps long lines
PTY_COLS = 5000
PTY_ROWS = 4000

_READ_SIZE = 4096


def _set_winsize(fd: int, rows: int, cols: int) -> None:
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))


class PtyProcess:
    def __init__(self, name: str, cmd: List[str], *, cwd: Optional[Path] = None,
                 on_output: Callable[[bytes], None], on_exit: Callable[[int], None],
                 env: Optional[dict] = None, cols: int = PTY_COLS, rows: int = PTY_ROWS):
        self.name = name
        self.cmd = list(cmd)
        self.cwd = cwd
        self.env = env
        self.cols = cols
        self.rows = rows
        self._on_output = on_output
        self._on_exit = on_exit
        self._proc: Optional[subprocess.Popen] = None
        self._master: Optional[int] = None
        self._write_lock = threading.Lock()
        self._reader: Optional[threading.Thread] = None

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc else None

    def spawn(self) -> None:
        log.info("Starting %s: %s", self.name, " ".join(self.cmd))
        master, slave = pty.openpty()
        try:
            _set_winsize(slave, self.rows, self.cols)
            env = dict(os.environ if self.env is None else self.env)
            env.setdefault("TERM", "xterm-color")
            self._proc = subprocess.Popen(
                self.cmd,
                cwd=str(self.cwd) if self.cwd else None,
                stdin=slave,
                stdout=slave,
                stderr=slave,
                env=env,
                start_new_session=True,
                close_fds=True,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
            os.close(master)
            raise SpawnError(f"Cannot start {self.name}: {e}") from e
        finally:
            os.close(slave)

        self._master = master
        self._reader = threading.Thread(target=self._read_loop, name=f"{self.name}-pty", daemon=True)
        self._reader.start()

    def write(self, data: bytes) -> None:
        with self._write_lock:
            if self._master is None:
                raise OSError(errno.EBADF, "process is not running")
            view = memoryview(data)
            while view:
                n = os.write(self._master, view)
                view = view[n:]

    def _read_loop(self) -> None:
        fd = self._master
        try:
            while True:
                try:
                    data = os.read(fd, _READ_SIZE)
                except OSError as e:
                    # Linux reports EIO once the slave side is closed
                    if e.errno != errno.EIO:
                        log.warning("Error reading %s output: %s", self.name, e)
                    break
                if not data:
                    break
                try:
                    self._on_output(data)
                except Exception:
                    log.exception("Error while handling %s output", self.name)
        finally:
            rc = self._proc.wait()
            with self._write_lock:
                os.close(fd)
                self._master = None
            log.info("%s exited with rc=%s", self.name, rc)
            self._on_exit(rc)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the reader (and thus the exit callback) to finish."""
        if self._reader is None:
            return True
        self._reader.join(timeout)
        return not self._reader.is_alive()
