import pytest

from services.error import (
    BackendError,
    EmptyFileError,
    ForwardCardError,
    ForwardEncodeError,
    catch_and_log,
    raise_and_log,
)


def test_error_hierarchy():
    assert issubclass(EmptyFileError, ForwardEncodeError)
    assert issubclass(ForwardCardError, ForwardEncodeError)
    assert issubclass(BackendError, ForwardEncodeError)


def test_empty_file_error_names_path():
    err = EmptyFileError("/tmp/x.png")
    assert err.path == "/tmp/x.png"
    assert str(err) == "文件异常，大小为 0: /tmp/x.png"


def test_raise_and_log():
    with pytest.raises(BackendError, match="boom"):
        raise_and_log("boom", BackendError)


def test_catch_and_log_reraises():
    with pytest.raises(KeyError):
        with catch_and_log("lookup"):
            raise KeyError("k")
