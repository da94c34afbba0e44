import pytest
from pydantic import ValidationError

import services.config_io as config_io
from services.config_schema import AppConfig, EncoderConfig, LocalBackendConfig


def test_encoder_defaults():
    cfg = EncoderConfig()
    assert cfg.max_forward_depth == 3
    assert cfg.default_nickname == "QQ用户"
    assert cfg.group_code == 284840486


def test_unknown_keys_rejected():
    with pytest.raises(ValidationError):
        EncoderConfig.model_validate({"max_depth": 5})


def test_negative_depth_rejected():
    with pytest.raises(ValidationError):
        EncoderConfig(max_forward_depth=-1)


def test_local_backend_uin_coercion():
    assert LocalBackendConfig.model_validate({"self_uin": 123456}).self_uin == "123456"
    with pytest.raises(ValidationError):
        LocalBackendConfig.model_validate({"self_uin": "abc"})


def test_app_config_ignores_backend_blocks():
    cfg = AppConfig.model_validate({"backend": "local", "local": {"self_uin": 1}, "encoder": {"max_forward_depth": 2}})
    assert cfg.backend == "local"
    assert cfg.encoder.max_forward_depth == 2


@pytest.mark.parametrize("name", ["config.json", "config.yaml", "config.toml"])
def test_save_and_load_round_trip(tmp_path, name):
    data = {"backend": "local", "encoder": {"default_nickname": "群友"}, "local": {"self_uin": "42"}}
    path = tmp_path / name
    config_io.save_config(data, path)
    assert config_io.load_config(path) == data
    assert config_io.find_config(tmp_path) == path


def test_load_app_config_without_file(tmp_path):
    cfg, raw = config_io.load_app_config(tmp_path)
    assert raw == {}
    assert cfg == AppConfig()


def test_load_app_config_validates(tmp_path):
    config_io.save_config({"encoder": {"bogus": 1}}, tmp_path / "config.json")
    with pytest.raises(ValidationError):
        config_io.load_app_config(tmp_path)
