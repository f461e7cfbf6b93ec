"""
Configuration loading.

The YAML file is deep-merged onto DEFAULT_CONFIG, then secrets are taken from
the environment (optionally populated from a .env file).
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'website': {
        'start_url': 'https://jte.csjt.jus.br/start',
        'organization_label': 'TRT2 - São Paulo',
        'module_label': 'Pauta',
        'unit_type_label': 'Audiências 1º grau',
        'region_label': 'São Paulo - Zonas Central, Norte e Oeste',
    },
    'browser': {
        'headless': True,
        'slow_mo': 0,
        'timeout': 30000,
        'viewport': {'width': 1920, 'height': 1080},
        'locale': 'pt-BR',
        'timezone': 'America/Sao_Paulo',
    },
    'navigation': {
        'date_strategy': 'stepper',
        'date_attempts': None,
        'date_retry_delay': 0.6,
        'stepper_max_steps': 220,
        'calendar_max_steps': 36,
        'retry': {
            'max_attempts': 5,
            'delay': 1.2,
            'backoff_factor': 1.0,
            'max_delay': 10.0,
        },
        'wait': {
            'navigation_timeout': 60000,
            'element_timeout': 20000,
            'trigger_timeout': 20000,
            'after_start_ms': 2500,
            'after_click_ms': 800,
            'after_option_ms': 150,
            'after_confirm_ms': 700,
            'poll_ms': 100,
            'label_change_timeout': 2500,
            'label_change_poll_ms': 80,
            'stepper_step_ms': 120,
            'stepper_failed_click_ms': 150,
            'calendar_step_ms': 120,
        },
    },
    'stabilization': {
        'max_iterations': 20,
        'poll_ms': 250,
        'confirm_ms': 600,
        'indicator_probe_timeout': 300,
        'indicator_hidden_timeout': 15000,
    },
    'units': {
        'include': [],
        'limit': None,
    },
    'dates': {
        'start_offset_days': 7,
        'months_ahead': 2,
        'extra_days': 10,
    },
    'storage': {
        'output_dir': 'output',
        'csv': {
            'filename_pattern': 'pauta_{timestamp}.csv',
            'delimiter': ';',
            'encoding': 'utf-8-sig',
        },
        'xlsx': {
            'filename_pattern': 'pauta_{timestamp}.xlsx',
            'sheet_name': 'Pauta',
        },
    },
    'database': {
        'enabled': False,
        'url': None,
        'host': '127.0.0.1',
        'port': 3306,
        'user': 'root',
        'password': '',
        'name': 'jte',
        'chunk_size': 800,
        'connect_timeout': 8,
    },
    'email': {
        'enabled': False,
        'host': None,
        'port': 587,
        'use_tls': True,
        'use_ssl': False,
        'username': None,
        'password': None,
        'sender': None,
        'recipients': [],
        'subject_prefix': 'Pauta',
    },
    'logging': {
        'level': 'INFO',
        'file': {'directory': 'logs'},
    },
    'scheduler': {
        'enabled': False,
        'mode': 'time',
        'time': '06:00',
        'days': None,
        'interval_hours': 24,
        'run_on_start': True,
    },
}

# (environment variable, section, key, converter)
ENV_OVERRIDES = (
    ('DB_ENABLED', 'database', 'enabled', 'bool'),
    ('DB_URL', 'database', 'url', 'str'),
    ('DB_HOST', 'database', 'host', 'str'),
    ('DB_PORT', 'database', 'port', 'int'),
    ('DB_USER', 'database', 'user', 'str'),
    ('DB_PASS', 'database', 'password', 'str'),
    ('DB_NAME', 'database', 'name', 'str'),
    ('SMTP_HOST', 'email', 'host', 'str'),
    ('SMTP_PORT', 'email', 'port', 'int'),
    ('SMTP_SECURE', 'email', 'use_ssl', 'bool'),
    ('SMTP_USER', 'email', 'username', 'str'),
    ('SMTP_PASS', 'email', 'password', 'str'),
    ('MAIL_FROM', 'email', 'sender', 'str'),
    ('MAIL_TO', 'email', 'recipients', 'str'),
)


def is_true(value: Any) -> bool:
    return str(value).strip().lower() in ('1', 'true', 'yes', 'y', 'on', 'sim')


def deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of base with override merged in, recursing into dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_env_overrides(config: Dict[str, Any], environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Override configuration values from environment variables.

    Empty variables are ignored. SMTP_SECURE=true switches to implicit TLS
    (SMTP over SSL) and disables STARTTLS.

    Args:
        config: Configuration dictionary (modified in place)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        The same configuration dictionary
    """
    environ = os.environ if environ is None else environ

    for variable, section, key, kind in ENV_OVERRIDES:
        raw = environ.get(variable)
        if raw is None or raw == '':
            continue
        if kind == 'bool':
            value = is_true(raw)
        elif kind == 'int':
            try:
                value = int(raw)
            except ValueError:
                logger.warning(f"Ignoring non-numeric {variable}={raw!r}")
                continue
        else:
            value = raw
        config.setdefault(section, {})[key] = value

    email = config.get('email', {})
    if email.get('use_ssl'):
        email['use_tls'] = False

    return config


def load_config(config_path: Optional[Path] = None, env_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file (defaults only when missing)
        env_file: Optional .env file (python-dotenv search when omitted)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        yaml.YAMLError: If the file is not valid YAML
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path is not None:
        with open(config_path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration root must be a mapping: {config_path}")
        config = deep_merge(config, loaded)

    return apply_env_overrides(config)
