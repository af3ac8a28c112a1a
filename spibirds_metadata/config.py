"""
Configuration loading for spibirds-metadata.

Reads config.yaml and flattens it into the params dict used throughout the
pipeline. Optional keys get their defaults here so the rest of the code can
index params directly.
"""

import os
import yaml

from .errors import ConfigError

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
PACKAGE_DATA_DIR = os.path.join(PACKAGE_DIR, 'data')


def load_config(config_path="config.yaml"):
    """Load configuration from YAML file and convert to params dict structure"""
    if not os.path.exists(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    if 'submissions_file' not in config:
        raise ConfigError("Config is missing required key 'submissions_file'")

    params = {}
    params['submissions_file'] = config['submissions_file']

    # Output locations
    params['output_dir'] = config.get('output_dir', 'processed/')
    params['eml_dir'] = config.get('eml_dir', os.path.join(params['output_dir'], 'eml'))
    params['tables_dir'] = config.get('tables_dir', 'tables/')
    params['archive_dir'] = config.get('archive_dir', os.path.join(params['tables_dir'], 'archive'))

    # Static lookup tables shipped with the package unless overridden
    params['euring_codes_path'] = config.get('euring_codes_path',
                                             os.path.join(PACKAGE_DATA_DIR, 'euring_codes.csv'))
    params['habitat_codes_path'] = config.get('habitat_codes_path',
                                              os.path.join(PACKAGE_DATA_DIR, 'eunis_habitats.csv'))

    # Network
    params['request_timeout'] = config.get('request_timeout', 30)

    # Reporting
    params['report_enabled'] = config.get('report_enabled', True)

    return params
