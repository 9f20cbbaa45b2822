"""Shared settings, defaults and helpers used across the probe engine."""

from __future__ import annotations

import json
import logging
import os
import ssl
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Mapping, TypeVar

import yaml

log = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V", bound=Hashable)
T = TypeVar("T")

ORG = "MegaEase"
DEFAULT_PROG = "EaseProbe"
DEFAULT_ICON_URL = "https://example.com/favicon.png"

VERSION = "v1.7.0"
ORG_PROG = f"{ORG} {DEFAULT_PROG}"
ORG_PROG_VER = f"{ORG} {DEFAULT_PROG}/{VERSION}"

# Durations are expressed in seconds.
DEFAULT_RETRY_TIMES = 3
DEFAULT_RETRY_INTERVAL = 5.0
DEFAULT_TIME_FORMAT = "2006-01-02 15:04:05 Z0700"
DEFAULT_TIME_ZONE = "UTC"
DEFAULT_PROBE_INTERVAL = 60.0
DEFAULT_TIMEOUT = 30.0
DEFAULT_CHANNEL_NAME = "__EaseProbe_Channel__"
DEFAULT_STATUS_CHANGE_THRESHOLD = 1

DEFAULT_HTTP_SERVER_IP = "0.0.0.0"
DEFAULT_HTTP_SERVER_PORT = "8181"
DEFAULT_PAGE_SIZE = 100
DEFAULT_ACCESS_LOG_FILE = "access.log"
DEFAULT_DATA_FILE = "data/data.yaml"
DEFAULT_PID_FILE = "easeprobe.pid"

DEFAULT_MAX_LOG_SIZE = 10
DEFAULT_MAX_LOG_AGE = 7
DEFAULT_MAX_BACKUPS = 5
DEFAULT_LOG_COMPRESS = True


@dataclass
class Retry:
    """How many times to retry and how long to wait between attempts (seconds)."""

    times: int = 0
    interval: float = 0.0


@dataclass
class TLSSettings:
    """Paths of the TLS files and whether verification is skipped."""

    ca: str = ""
    cert: str = ""
    key: str = ""
    insecure: bool = False

    def config(self) -> ssl.SSLContext | None:
        """Build a client SSL context, or return None when TLS is not configured."""
        if not self.ca:
            if self.insecure:
                log.debug("[TLS] Insecure is true but the CA is empty, return a tls config")
                return self._context()
            return None

        with open(self.ca, encoding="utf-8", errors="replace") as handle:
            ca_data = handle.read()

        context = self._context()
        try:
            context.load_verify_locations(cadata=ca_data)
        except ssl.SSLError as err:
            log.warning("[TLS] No usable certificate in CA file %s: %s", self.ca, err)

        if not self.cert or not self.key:
            log.debug("[TLS] Only have CA file, go TLS")
            return context

        log.debug("[TLS] Have both CA and cert/key, go mTLS way")
        context.load_cert_chain(certfile=self.cert, keyfile=self.key)
        return context

    def _context(self) -> ssl.SSLContext:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        if self.insecure:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context


class NoRetryError(Exception):
    """An error after which no further attempt should be made."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


def normalize(global_value: Any, local_value: Any, valid: Any, default: Any) -> Any:
    """Pick the local value if valid, else the global one if valid, else the default."""
    if local_value <= valid:
        return global_value if global_value > valid else default
    return local_value


def reverse_map(mapping: Mapping[K, V]) -> dict[V, K]:
    """Swap the keys and values of a mapping."""
    return {value: key for key, value in mapping.items()}


def enum_to_yaml(mapping: Mapping[T, str], value: T, typename: str) -> str:
    """Return the YAML representation of an enum value."""
    try:
        return mapping[value]
    except KeyError:
        raise ValueError(f"{value} is not a valid {typename}") from None


def enum_to_json(mapping: Mapping[T, str], value: T, typename: str) -> str:
    """Return the JSON text of an enum value."""
    try:
        return f'"{mapping[value]}"'
    except KeyError:
        raise ValueError(f"{value} is not a valid {typename}") from None


def _lookup(text: str, mapping: Mapping[str, T], typename: str) -> T:
    try:
        return mapping[text.lower()]
    except KeyError:
        raise ValueError(f"{text} is not a valid {typename}") from None


def enum_from_yaml(text: str, mapping: Mapping[str, T], typename: str) -> T:
    """Parse a YAML scalar into an enum value, case-insensitively."""
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise ValueError(f"cannot parse {typename}: {err}") from err
    if isinstance(loaded, (dict, list)):
        raise ValueError(f"cannot unmarshal {type(loaded).__name__} into {typename}")
    return _lookup("" if loaded is None else str(loaded), mapping, typename)


def enum_from_json(text: str | bytes, mapping: Mapping[str, T], typename: str) -> T:
    """Parse a JSON string into an enum value, case-insensitively."""
    try:
        loaded = json.loads(text)
    except json.JSONDecodeError as err:
        raise ValueError(f"cannot parse {typename}: {err}") from err
    if loaded is None:
        loaded = ""
    if not isinstance(loaded, str):
        raise ValueError(f"cannot unmarshal {type(loaded).__name__} into {typename}")
    return _lookup(loaded, mapping, typename)


def do_retry(kind: str, name: str, tag: str, retry: Retry, fn: Callable[[], T]) -> T:
    """Call fn until it succeeds, up to retry.times attempts.

    A NoRetryError from fn is raised at once; when every attempt fails a
    RuntimeError is raised with the last error chained.
    """
    last_error: Exception | None = None
    for attempt in range(1, retry.times + 1):
        try:
            return fn()
        except NoRetryError:
            raise
        except Exception as err:  # noqa: BLE001 - any failure is retried
            last_error = err
            log.warning(
                "[%s / %s / %s] Retried to send %d/%d - %s",
                kind, name, tag, attempt, retry.times, err,
            )
        if attempt < retry.times:
            time.sleep(retry.interval)
    raise RuntimeError(
        f"[{kind} / {name} / {tag}] failed after {retry.times} retries - {last_error}"
    ) from last_error


def _home_dir() -> str:
    home = os.path.expanduser("~")
    if not home or home == "~":
        raise OSError("cannot determine the user home directory")
    return home


def get_work_dir() -> str:
    """Return the working directory, falling back to home, then the temp directory."""
    try:
        return os.getcwd()
    except OSError as err:
        log.warning("Cannot get the current directory: %s, using $HOME directory!", err)
    try:
        return _home_dir()
    except OSError as err:
        log.warning("Cannot get the user home directory: %s, using /tmp directory!", err)
    return tempfile.gettempdir()


def make_directory(filename: str) -> str:
    """Make sure the directory of filename exists and return its absolute path."""
    directory, file = os.path.split(filename)
    if not directory:
        directory = get_work_dir()
    if not file:
        return directory

    if directory == "~" or directory.startswith("~/"):
        try:
            home = _home_dir()
        except OSError as err:
            log.warning("Cannot get the user home directory: %s, using /tmp directory as home", err)
            home = tempfile.gettempdir()
        directory = os.path.join(home, directory[2:])

    try:
        directory = os.path.abspath(directory)
    except OSError as err:
        log.warning("Cannot get the absolute path: %s", err)
        directory = get_work_dir()

    if not os.path.exists(directory):
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as err:
            log.warning("Cannot create the directory: %s", err)
            directory = get_work_dir()

    return os.path.join(directory, file)


def command_line(cmd: str, args: list[str]) -> str:
    """Join a command and its arguments into one line."""
    return " ".join([cmd, *args])