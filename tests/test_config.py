import pytest
import yaml

from pauta_crawler.config import DEFAULT_CONFIG, apply_env_overrides, deep_merge, load_config


def test_deep_merge_keeps_untouched_defaults():
    merged = deep_merge(DEFAULT_CONFIG, {'navigation': {'wait': {'poll_ms': 50}}})

    assert merged['navigation']['wait']['poll_ms'] == 50
    assert merged['navigation']['wait']['element_timeout'] == 20000
    assert DEFAULT_CONFIG['navigation']['wait']['poll_ms'] == 100


def test_load_config_from_yaml(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump({'navigation': {'date_strategy': 'calendar'}, 'units': {'limit': 3}}),
                    encoding='utf-8')

    config = load_config(path)

    assert config['navigation']['date_strategy'] == 'calendar'
    assert config['units']['limit'] == 3
    assert config['website']['organization_label'] == 'TRT2 - São Paulo'


def test_load_config_rejects_non_mapping(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / 'config.yaml'
    path.write_text("- just\n- a list\n", encoding='utf-8')

    with pytest.raises(ValueError):
        load_config(path)


def test_env_overrides_database_and_smtp():
    config = deep_merge(DEFAULT_CONFIG, {})
    environ = {
        'DB_ENABLED': 'true',
        'DB_HOST': 'db.internal',
        'DB_PORT': '3307',
        'DB_PASS': 'secret',
        'SMTP_HOST': 'smtp.example.com',
        'SMTP_SECURE': 'true',
        'MAIL_TO': 'a@x.com;b@x.com',
        'DB_USER': '',
    }

    apply_env_overrides(config, environ)

    assert config['database']['enabled'] is True
    assert config['database']['host'] == 'db.internal'
    assert config['database']['port'] == 3307
    assert config['database']['password'] == 'secret'
    assert config['database']['user'] == 'root'
    assert config['email']['use_ssl'] is True
    assert config['email']['use_tls'] is False
    assert config['email']['recipients'] == 'a@x.com;b@x.com'


def test_env_override_ignores_bad_numbers():
    config = deep_merge(DEFAULT_CONFIG, {})

    apply_env_overrides(config, {'DB_PORT': 'abc', 'DB_ENABLED': 'no'})

    assert config['database']['port'] == 3306
    assert config['database']['enabled'] is False
