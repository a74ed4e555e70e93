"""
Shared helper functions and utilities.

This module contains logging setup and configuration loading used across
the project.
"""

import json
import logging
import os


def setup_logging(level=logging.INFO):
    """Set up logging configuration.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)
    logger.info("Logging initialized")


def get_config(config_path=None):
    """Load configuration from file or return defaults.

    Sections present in the file are merged key by key into the defaults.

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        dict: Configuration dictionary
    """
    # Default configuration
    default_config = {
        # Camera
        'image_width': 640,
        'image_height': 480,

        'calibration': {
            'calibration_file': None,  # Optional path to JSON file with camera_matrix/dist_coeffs
            'camera_matrix': [
                [800.0, 0.0, 320.0],
                [0.0, 800.0, 240.0],
                [0.0, 0.0, 1.0],
            ],
            'dist_coeffs': [0.0, 0.0, 0.0, 0.0, 0.0],
        },

        # Rectangle detection
        'detection': {
            'blur_kernel': 5,
            'canny_low': 50,
            'canny_high': 150,
            'approx_epsilon': 0.02,  # fraction of contour perimeter
            'min_size': 0.05,  # fraction of the smaller image dimension
            'min_confidence': 0.5,
            'max_observations': 1,
            'border_margin': 2,
        },

        # Hit testing
        'hit_test': {
            'sort_by_distance': True,  # closest common surface wins ties
            'min_distance': 0.001,  # meters in front of the camera
        },

        # Touch / detection scheduling
        'session': {
            'update_interval': 1.0,  # seconds between detections while a touch is held
            'background_detection': False,
        },

        # Overlay rendering
        'overlay': {
            'grid_spacing': 0.25,
            'blend_alpha': 0.6,
            'thickness': 2,
            'antialiasing': True,
        },

        # Synthetic scene (demo / tests)
        'scene': {
            'camera_position': [0.0, 1.5, 1.2],
            'camera_target': [0.0, 0.0, 0.0],
            'floor_extent': [10.0, 10.0],
            'rect_center': [0.0, 0.0, 0.0],
            'rect_size': [0.297, 0.21],
            'rect_yaw': 0.0,
            'noise_sigma': 0.0,
        },
    }

    # Load from file if provided
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                loaded_config = json.load(f)
            for key, value in loaded_config.items():
                if isinstance(value, dict) and isinstance(default_config.get(key), dict):
                    default_config[key].update(value)
                else:
                    default_config[key] = value
            logging.info(f"Configuration loaded from {config_path}")
        except Exception as e:
            logging.warning(f"Failed to load config from {config_path}: {e}")

    return default_config


def save_config(config, config_path):
    """Save configuration to file.

    Args:
        config: Configuration dictionary
        config_path: Path to save configuration file

    Returns:
        bool: True if save successful, False otherwise
    """
    try:
        with open(config_path, 'w') as f:
            json.dump(config, f, indent=4)
        logging.info(f"Configuration saved to {config_path}")
        return True
    except Exception as e:
        logging.error(f"Failed to save config to {config_path}: {e}")
        return False


def validate_config(config):
    """Validate configuration parameters.

    Args:
        config: Configuration dictionary

    Returns:
        bool: True if valid, False otherwise
    """
    required_keys = ['image_width', 'image_height', 'calibration']

    for key in required_keys:
        if key not in config:
            logging.error(f"Missing required config key: {key}")
            return False

    # Validate numeric values
    if config['image_width'] <= 0 or config['image_height'] <= 0:
        logging.error("Image dimensions must be positive")
        return False

    interval = config.get('session', {}).get('update_interval', 1.0)
    if interval < 0:
        logging.error("Session update interval must not be negative")
        return False

    logging.info("Configuration validated successfully")
    return True
