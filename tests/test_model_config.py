import json                                     # Write config fixtures to disk
import os                                       # Locate the bundled config file

import pytest                                   # Pytest framework for testing and assertions
from pydantic import ValidationError

from src.models.errors import ModelConfigError
from src.models.model_config import (
    FEATURE_ORDER,
    ModelConfig,
    NormalizationParameters,
    load_model_config,
)


BASE_DIR = os.path.dirname(os.path.dirname(__file__))


def write_config(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return path


def test_bundled_config_loads():
    """The shipped sidecar matches the trained model's constants"""
    config = load_model_config(os.path.join(BASE_DIR, "models", "heart_model.json"))

    assert config.features == FEATURE_ORDER
    assert config.normalization.mean == [54.3, 150.0, 0.6, 1.2]
    assert config.normalization.scale == [9.2, 22.5, 0.49, 0.8]
    assert config.threshold == 0.5
    assert config.input_name == "float_input"
    assert len(config.chest_pain_types) == 4


def test_defaults(tmp_path):
    path = write_config(tmp_path, {
        "normalization": {"mean": [0, 0, 0, 0], "scale": [1, 1, 1, 1]},
    })

    config = load_model_config(path)

    assert config.threshold == 0.5               # Default decision threshold
    assert config.output_name is None            # First output by default


def test_zero_scale_rejected():
    with pytest.raises(ValidationError):          # Would divide by zero
        NormalizationParameters(mean=[0, 0, 0, 0], scale=[1, 0, 1, 1])


def test_wrong_length_rejected():
    with pytest.raises(ValidationError):
        NormalizationParameters(mean=[0, 0, 0], scale=[1, 1, 1])


def test_feature_order_is_enforced():
    with pytest.raises(ValidationError):          # Reordered features need retraining
        ModelConfig(
            features=["thalach", "age", "sex", "cp"],
            normalization={"mean": [0, 0, 0, 0], "scale": [1, 1, 1, 1]},
        )


def test_threshold_out_of_range(tmp_path):
    path = write_config(tmp_path, {
        "normalization": {"mean": [0, 0, 0, 0], "scale": [1, 1, 1, 1]},
        "threshold": 1.5,
    })

    with pytest.raises(ModelConfigError):
        load_model_config(path)


def test_missing_file(tmp_path):
    with pytest.raises(ModelConfigError):
        load_model_config(tmp_path / "absent.json")


def test_malformed_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    with pytest.raises(ModelConfigError):
        load_model_config(path)
