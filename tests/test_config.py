import pytest

from pendant.modules.config import ConfigError
from pendant.modules.config import apply_overrides
from pendant.modules.config import load_config
from pendant.modules.config import load_config_from_env

def test_defaults():
    """
    Test that no path yields the default configuration.
    """
    config = load_config(None)
    assert config.grbl.port == "/dev/ttyUSB0"
    assert config.grbl.baudrate == 115200
    assert config.jog.base_speed == 5000
    assert config.jog.loop_interval_ms == 150
    assert config.jog.base_step == pytest.approx(12.5)
    assert config.macros == []

def test_load_yaml(tmp_path):
    """
    Test that a YAML file is loaded with hex USB ids and macros.
    """
    path = tmp_path / "pendant.yaml"
    path.write_text(
        "grbl:\n"
        "  port: /dev/ttyACM0\n"
        "device:\n"
        "  vendor_id: '0x046d'\n"
        "  product_id: 49948\n"
        "jog:\n"
        "  loop_interval_ms: 200\n"
        "macros:\n"
        "  - name: z-probe\n"
        "    id: probe-z\n"
        "    commands: [G91, G38.2 Z-20 F100, G90]\n"
    )
    config = load_config(str(path))
    assert config.grbl.port == "/dev/ttyACM0"
    assert config.device.vendor_id == 0x046D
    assert config.device.product_id == 49948
    assert config.jog.base_step == pytest.approx(5000 * 200 / 60000)
    assert config.macros[0].id == "probe-z"
    assert config.macros[0].commands == ["G91", "G38.2 Z-20 F100", "G90"]

def test_empty_file(tmp_path):
    """
    Test that an empty file yields defaults.
    """
    path = tmp_path / "pendant.yaml"
    path.write_text("")
    assert load_config(str(path)).grbl.port == "/dev/ttyUSB0"

@pytest.mark.parametrize("content", [
    "grbl: [unclosed\n",
    "- just\n- a list\n",
    "grbl:\n  baudrate: fast\n",
])
def test_invalid_config(tmp_path, content):
    """
    Test that unreadable or invalid configuration raises ConfigError.
    """
    path = tmp_path / "pendant.yaml"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_config(str(path))

def test_missing_file(tmp_path):
    """
    Test that a missing file raises ConfigError.
    """
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.yaml"))

def test_load_from_env(tmp_path, monkeypatch):
    """
    Test that PENDANT_CONFIG selects the configuration file.
    """
    path = tmp_path / "pendant.yaml"
    path.write_text("log_level: DEBUG\n")
    monkeypatch.setenv("PENDANT_CONFIG", str(path))
    assert load_config_from_env().log_level == "DEBUG"

def test_apply_overrides():
    """
    Test that overrides replace values and None leaves them alone.
    """
    config = apply_overrides(
        load_config(None),
        grbl__port="/dev/ttyS1",
        grbl__baudrate=None,
        device__vendor_id=0x1234,
        log_level="DEBUG"
    )
    assert config.grbl.port == "/dev/ttyS1"
    assert config.grbl.baudrate == 115200
    assert config.device.vendor_id == 0x1234
    assert config.log_level == "DEBUG"

def test_apply_overrides_unknown_section():
    """
    Test that an override for an unknown section is rejected.
    """
    with pytest.raises(ConfigError):
        apply_overrides(load_config(None), nothing__here=1)
