# easeprobe

Building blocks for a health-probing service: global settings with
defaults, retry handling, TLS client configuration, program identity
with time-zone aware formatting, and Prometheus-style metric registries.

## Installation

```
pip install easeprobe
```

For running the tests:

```
pip install "easeprobe[test]"
pytest
```

All durations in this package are plain numbers of seconds.

## `easeprobe.common`

Defaults such as `DEFAULT_TIMEOUT` (30.0), `DEFAULT_PROBE_INTERVAL` (60.0),
`DEFAULT_RETRY_TIMES` (3), `DEFAULT_RETRY_INTERVAL` (5.0),
`DEFAULT_TIME_FORMAT` and `DEFAULT_TIME_ZONE` ("UTC"), and these helpers:

- `Retry(times, interval)` – how many attempts to make and the seconds to
  wait between them.
- `do_retry(kind, name, tag, retry, fn)` – call `fn` until it returns,
  at most `retry.times` times, sleeping `retry.interval` between failed
  attempts. It returns what `fn` returns. A `NoRetryError` raised by `fn`
  is raised again at once; when every attempt fails a `RuntimeError` is
  raised with the last error chained.
- `TLSSettings(ca, cert, key, insecure).config()` – returns `None` when no
  CA is set and `insecure` is false; an `ssl.SSLContext` that skips
  verification when only `insecure` is set; otherwise a client context
  trusting the CA file, with the certificate and key loaded when both are
  given. A missing file raises `OSError`.
- `normalize(global_value, local_value, valid, default)` – returns the
  local value if it is greater than `valid`, else the global value if that
  is, else the default.
- `reverse_map(mapping)` – swaps keys and values.
- `enum_to_yaml`, `enum_to_json`, `enum_from_yaml`, `enum_from_json` –
  map enum members to and from text; lookups of text are case-insensitive
  and unknown values raise `ValueError`.
- `get_work_dir()` – the current directory, else the home directory, else
  the temporary directory.
- `make_directory(filename)` – expands a leading `~/`, makes the file's
  directory absolute, creates it if missing and returns the full path.
- `command_line(cmd, args)` – joins a command and its arguments with spaces.

```python
from easeprobe.common import NoRetryError, Retry, do_retry

def send():
    ...

do_retry("notify", "slack", "alert", Retry(times=3, interval=1.0), send)
```

## `easeprobe.settings`

`NotifySettings(time_format, timeout, retry)` and
`ProbeSettings(interval, timeout, threshold)` fill in what a single probe
or notifier leaves unset (zero or less), using the global value when it is
set and the default otherwise:

```python
from easeprobe.common import Retry
from easeprobe.settings import ProbeSettings, StatusChangeThresholdSettings, NotifySettings

probe = ProbeSettings(timeout=20.0)
probe.normalize_timeout(0)        # 20.0
probe.normalize_interval(0)       # 60.0
probe.normalize_threshold(StatusChangeThresholdSettings(failure=2))
# StatusChangeThresholdSettings(failure=2, success=1)

NotifySettings().normalize_retry(Retry(times=10))
# Retry(times=10, interval=5.0)
```

## `easeprobe.identity`

Holds one `EaseProbe` record: name, icon URL, version, host name, time
format and time zone.

- `init_ease_probe(name, icon)` and
  `init_ease_probe_with_time(name, icon, time_format, time_zone)` set it up.
- `get_ease_probe()` returns it, building a default one when none exists;
  `reset_ease_probe()` forgets it.
- `set_time_zone(name)` accepts IANA names, `"UTC"`, `""` and `"Local"`;
  an unknown name falls back to UTC. `set_time_format(layout)` with a blank
  layout restores the default.
- `format_time(moment, layout=None)` converts `moment` to the configured
  zone (naive moments are taken as UTC) and formats it with a layout built
  on the reference time `Mon Jan 2 15:04:05 MST 2006`.
- `footer_string()` returns `"<name> <version> @ <host>"`.

```python
from datetime import datetime, timezone
from easeprobe import identity

identity.init_ease_probe_with_time("EaseProbe", "icon.png",
                                   "2006-01-02 15:04:05 Z07:00", "Asia/Shanghai")
identity.format_time(datetime(2022, 1, 2, 15, 4, 5, tzinfo=timezone.utc))
# '2022-01-02 23:04:05 +08:00'
```

## `easeprobe.metric`

Registries of labelled counters and gauges that follow Prometheus naming
rules.

- `new_counter(namespace, subsystem, name, metric, help, labels)` and
  `new_gauge(...)` build the name with `get_name`, register a `CounterVec`
  or `GaugeVec` and return it; asking again for the same name returns the
  one already registered. An invalid metric or label name, or a name
  already taken by the other kind, raises `ValueError`.
- `counter(key)` and `gauge(key)` look a metric up by its full name.
- `CounterVec.inc(labels, amount=1.0)` (negative amounts raise
  `ValueError`), `GaugeVec.set(labels, value)`, `value(labels)` and
  `samples()`. The label mapping must name exactly the metric's labels.
- `get_name(*fields)`, `remove_invalid_chars(name)`,
  `valid_metric_name(name)`, `valid_label_name(label)`,
  `valid_metric_char(ch)`.

```python
from easeprobe import metric

total = metric.new_counter("probe", "http", "requests", "total",
                           "number of requests", ["name", "status"])
total.inc({"name": "site", "status": "up"})
total.value({"name": "site", "status": "up"})   # 1.0

metric.get_name("name@!$space", "sub-system(test)", "name", "metric")
# 'namespace_subsystemtest_name_metric'
```

## What this package does not do

It runs no probes and sends no notifications, has no command-line program,
and serves no HTTP pages or metrics endpoint: the metric registries keep
their values in memory for the caller to read. Probe results are not
stored anywhere.