import datetime
import enum
import os
import ssl
import tempfile
from unittest import mock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from easeprobe.common import (
    DEFAULT_RETRY_INTERVAL,
    NoRetryError,
    Retry,
    TLSSettings,
    command_line,
    do_retry,
    enum_from_json,
    enum_from_yaml,
    enum_to_json,
    enum_to_yaml,
    get_work_dir,
    make_directory,
    normalize,
    reverse_map,
)


def test_reverse_map():
    n = reverse_map({1: "a", 2: "b", 3: "c"})
    assert n == {"a": 1, "b": 2, "c": 3}


class SampleKind(enum.IntEnum):
    UNKNOWN = 0
    TEST1 = 1
    TEST2 = 2
    TEST3 = 3
    TEST4 = 4


KIND_TO_STR = {
    SampleKind.UNKNOWN: "unknown",
    SampleKind.TEST1: "test1",
    SampleKind.TEST2: "test2",
    SampleKind.TEST3: "test3",
    SampleKind.TEST4: "test4",
}
STR_TO_KIND = reverse_map(KIND_TO_STR)


@pytest.mark.parametrize(
    "text, kind",
    [
        ("test1", SampleKind.TEST1),
        ("test2", SampleKind.TEST2),
        ("test3", SampleKind.TEST3),
        ("test4", SampleKind.TEST4),
        ("unknown", SampleKind.UNKNOWN),
    ],
)
def test_enum_good(text, kind):
    assert enum_from_yaml(text + "\n", STR_TO_KIND, "Test") == kind
    assert enum_to_yaml(KIND_TO_STR, kind, "Test") == text
    assert enum_from_json(f'"{text}"', STR_TO_KIND, "Test") == kind
    assert enum_to_json(KIND_TO_STR, kind, "Test") == f'"{text}"'


def test_enum_case_insensitive():
    assert enum_from_json('"TEST2"', STR_TO_KIND, "Test") == SampleKind.TEST2
    assert enum_from_yaml("Test3", STR_TO_KIND, "Test") == SampleKind.TEST3


def test_enum_bad():
    with pytest.raises(ValueError, match="bad is not a valid Test"):
        enum_from_yaml("bad\n", STR_TO_KIND, "Test")
    with pytest.raises(ValueError, match="bad is not a valid Test"):
        enum_from_json('"bad"', STR_TO_KIND, "Test")
    with pytest.raises(ValueError, match="10 is not a valid Test"):
        enum_to_yaml(KIND_TO_STR, 10, "Test")
    with pytest.raises(ValueError, match="10 is not a valid Test"):
        enum_to_json(KIND_TO_STR, 10, "Test")


def test_enum_bad_structure():
    with pytest.raises(ValueError):
        enum_from_json('{"x":"y"}', STR_TO_KIND, "Test")
    with pytest.raises(ValueError):
        enum_from_yaml("-bad::", STR_TO_KIND, "Test")


def _name(common_name, org):
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "EA"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, org),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )


def _key_pem(key):
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="module")
def certs(tmp_path_factory):
    path = tmp_path_factory.mktemp("certs")
    now = datetime.datetime.now(datetime.timezone.utc)

    ca_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    ca_name = _name("CA", "Example")
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(ca_name)
        .issuer_name(ca_name)
        .public_key(ca_key.public_key())
        .serial_number(2019)
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=3650))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(ca_key, hashes.SHA256())
    )
    (path / "ca.crt").write_bytes(ca_cert.public_bytes(serialization.Encoding.PEM))
    (path / "ca.key").write_bytes(_key_pem(ca_key))

    srv_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    srv_cert = (
        x509.CertificateBuilder()
        .subject_name(_name("Server", "Server Company"))
        .issuer_name(ca_name)
        .public_key(srv_key.public_key())
        .serial_number(1658)
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=3650))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName("localhost")]), critical=False)
        .sign(ca_key, hashes.SHA256())
    )
    (path / "test.crt").write_bytes(srv_cert.public_bytes(serialization.Encoding.PEM))
    (path / "test.key").write_bytes(_key_pem(srv_key))
    return path


def test_tls_none():
    assert TLSSettings().config() is None


def test_tls_insecure_only():
    ctx = TLSSettings(insecure=True).config()
    assert isinstance(ctx, ssl.SSLContext)
    assert ctx.verify_mode == ssl.CERT_NONE
    assert ctx.check_hostname is False


def test_tls_missing_files(tmp_path):
    settings = TLSSettings(
        ca=str(tmp_path / "ca.crt"),
        cert=str(tmp_path / "test.crt"),
        key=str(tmp_path / "test.key"),
    )
    with pytest.raises(FileNotFoundError):
        settings.config()


def test_tls_mtls(certs):
    settings = TLSSettings(
        ca=str(certs / "ca.crt"), cert=str(certs / "test.crt"), key=str(certs / "test.key")
    )
    ctx = settings.config()
    assert isinstance(ctx, ssl.SSLContext)
    assert len(ctx.get_ca_certs()) == 1
    assert ctx.verify_mode == ssl.CERT_REQUIRED


def test_tls_mismatched_key(certs):
    settings = TLSSettings(
        ca=str(certs / "ca.crt"), cert=str(certs / "test.crt"), key=str(certs / "ca.key")
    )
    with pytest.raises(ssl.SSLError):
        settings.config()


def test_tls_ca_only(certs):
    ctx = TLSSettings(ca=str(certs / "ca.crt"), insecure=False).config()
    assert isinstance(ctx, ssl.SSLContext)
    assert len(ctx.get_ca_certs()) == 1
    assert ctx.verify_mode == ssl.CERT_REQUIRED


def test_normalize():
    assert normalize(10, 20, 0, 30) == 20
    assert normalize(10, 0, 0, 10) == 10
    assert normalize(0, 0, 0, 30) == 30
    assert normalize(5.0, 0.0, 0, DEFAULT_RETRY_INTERVAL) == 5.0


def test_retry():
    r = Retry(times=3, interval=0.01)
    state = {"cnt": 0}

    def f():
        if state["cnt"] < r.times:
            state["cnt"] += 1
            raise RuntimeError(f"error, cnt={state['cnt']}")
        return "done"

    with pytest.raises(RuntimeError) as info:
        do_retry("test", "dummy", "tag", r, f)
    assert state["cnt"] == r.times
    assert str(info.value) == "[test / dummy / tag] failed after 3 retries - error, cnt=3"

    state["cnt"] = 1
    assert do_retry("test", "dummy", "tag", r, f) == "done"
    assert state["cnt"] == r.times


def test_retry_no_retry_error():
    r = Retry(times=3, interval=0.01)
    calls = []

    def f():
        calls.append(1)
        raise NoRetryError("No Retry Error")

    with pytest.raises(NoRetryError) as info:
        do_retry("test", "dummy", "tag", r, f)
    assert len(calls) == 1
    assert str(info.value) == "No Retry Error"


def test_make_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert make_directory("") == get_work_dir()

    assert make_directory("./test.txt") == os.path.abspath("./test.txt")

    expected = os.path.abspath("./none/existed/test.txt")
    assert make_directory("./none/existed/test.txt") == expected
    assert os.path.isdir(os.path.dirname(expected))


def test_make_directory_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    result = make_directory("~/none/existed/test.txt")
    assert result == os.path.join(str(home), "none/existed/test.txt")
    assert (home / "none" / "existed").is_dir()


def test_get_work_dir_fallbacks(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    temp_dir = tempfile.gettempdir()
    with mock.patch("os.getcwd", side_effect=OSError("error")):
        assert get_work_dir() == str(tmp_path)
        with mock.patch("os.path.expanduser", return_value="~"):
            assert get_work_dir() == temp_dir


def test_make_directory_home_failure():
    temp_dir = tempfile.gettempdir()
    with mock.patch("os.path.expanduser", return_value="~"):
        result = make_directory("~/test.txt")
    assert result == os.path.join(temp_dir, "test.txt")


def test_make_directory_mkdir_failure(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = str(tmp_path / "not" / "existed" / "test.txt")
    with mock.patch("os.makedirs", side_effect=OSError("error")):
        result = make_directory(target)
    assert result == os.path.join(get_work_dir(), "test.txt")


def test_command_line():
    assert command_line("echo", ["hello", "world"]) == "echo hello world"
    assert (
        command_line("kubectl", ["get", "pod", "--all-namespaces", "-o", "json"])
        == "kubectl get pod --all-namespaces -o json"
    )
    assert command_line("ls", []) == "ls"