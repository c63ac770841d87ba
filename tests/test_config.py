"""Tests for settings and the interface inventory."""
import logging
from pathlib import Path

import pytest

from netset_reconciler.config.inventory import InterfaceInventory
from netset_reconciler.config.settings import DEFAULT_SET_NAME, ReconcilerConfig
from netset_reconciler.store.entities import InterfaceKind, ProtocolKind


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "NETSET_SET_NAME", "NETSET_STORE", "NETSET_INTERFACES", "NETSET_MAKE_CURRENT",
        "NETSET_APPLY", "NETSET_LOCK_WAIT", "NETSET_LOCK_ATTEMPTS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestReconcilerConfig:
    """Tests for settings loading."""

    def test_defaults(self, clean_env):
        config = ReconcilerConfig.load()

        assert config.set_name == DEFAULT_SET_NAME
        assert config.make_current
        assert config.apply_changes
        assert not config.lock_wait
        assert config.interfaces_path is None

    def test_from_file(self, clean_env, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "set_name: lab\n"
            "store_path: /tmp/prefs.yaml\n"
            "interfaces_path: /tmp/interfaces.yaml\n"
            "lock_attempts: 5\n"
        )

        config = ReconcilerConfig.load(path)

        assert config.set_name == "lab"
        assert config.store_path == Path("/tmp/prefs.yaml")
        assert config.interfaces_path == Path("/tmp/interfaces.yaml")
        assert config.lock_attempts == 5

    def test_unknown_keys_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = ReconcilerConfig.from_dict({"set_name": "lab", "colour": "blue"})

        assert config.set_name == "lab"
        assert "Ignoring unknown setting: colour" in caplog.text

    def test_environment_wins(self, clean_env, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("set_name: lab\nmake_current: true\n")
        clean_env.setenv("NETSET_SET_NAME", "from-env")
        clean_env.setenv("NETSET_STORE", str(tmp_path / "prefs.yaml"))
        clean_env.setenv("NETSET_MAKE_CURRENT", "0")
        clean_env.setenv("NETSET_APPLY", "no")
        clean_env.setenv("NETSET_LOCK_WAIT", "yes")
        clean_env.setenv("NETSET_LOCK_ATTEMPTS", "7")

        config = ReconcilerConfig.load(path)

        assert config.set_name == "from-env"
        assert config.store_path == tmp_path / "prefs.yaml"
        assert not config.make_current
        assert not config.apply_changes
        assert config.lock_wait
        assert config.lock_attempts == 7


class TestInterfaceInventory:
    """Tests for the YAML interface inventory."""

    def test_load(self, inventory_yaml):
        inventory = InterfaceInventory(str(inventory_yaml))

        assert inventory.get_interface_names() == ["en0", "en1", "en2", "bridge0", "ppp0", "en5"]
        wifi = inventory.get_interface("en1")
        assert wifi.kind == InterfaceKind.IEEE80211
        assert wifi.display_name == "Wi-Fi"
        assert wifi.hardware_address == "a4:83:e7:00:00:01"
        assert wifi.supports_protocol(ProtocolKind.IPV6)
        assert not inventory.get_interface("ppp0").supports_protocol(ProtocolKind.IPV6)

    def test_members(self, inventory_yaml):
        inventory = InterfaceInventory(str(inventory_yaml))

        assert inventory.get_members("bridge0") == ["en0", "en2"]
        assert inventory.get_members("en0") == []

    def test_unknown_interface(self, inventory_yaml):
        inventory = InterfaceInventory(str(inventory_yaml))

        with pytest.raises(KeyError, match="Unknown interface: wlan9"):
            inventory.get_interface("wlan9")

    def test_underlying_resolved_out_of_order(self, tmp_path):
        """A VLAN may be listed before the interface it sits on."""
        path = tmp_path / "interfaces.yaml"
        path.write_text(
            "interfaces:\n"
            "  vlan0:\n"
            "    type: VLAN\n"
            "    underlying: en0\n"
            "    protocols: [IPv4, IPv6]\n"
            "  en0:\n"
            "    type: Ethernet\n"
            "    interface_types: [VLAN, Bond]\n"
        )

        inventory = InterfaceInventory(str(path))

        vlan = inventory.get_interface("vlan0")
        assert vlan.underlying is inventory.get_interface("en0")
        assert inventory.get_interface("en0").supported_interface_kinds == frozenset(
            {InterfaceKind.VLAN, InterfaceKind.BOND}
        )

    def test_circular_underlying(self, tmp_path):
        path = tmp_path / "interfaces.yaml"
        path.write_text(
            "interfaces:\n"
            "  a:\n"
            "    type: VLAN\n"
            "    underlying: b\n"
            "  b:\n"
            "    type: VLAN\n"
            "    underlying: a\n"
        )

        with pytest.raises(ValueError, match="Circular"):
            InterfaceInventory(str(path))

    def test_unrecognized_entries(self, tmp_path, caplog):
        path = tmp_path / "interfaces.yaml"
        path.write_text(
            "interfaces:\n"
            "  utun0:\n"
            "    type: Tunnel\n"
            "    protocols: [IPv6, AppleTalk]\n"
        )

        with caplog.at_level(logging.WARNING):
            inventory = InterfaceInventory(str(path))

        tunnel = inventory.get_interface("utun0")
        assert tunnel.kind is None
        assert tunnel.type_name == "Tunnel"
        assert tunnel.supported_protocol_kinds == frozenset({ProtocolKind.IPV6})
        assert "unrecognized type" in caplog.text
        assert "unknown protocol: AppleTalk" in caplog.text

    def test_missing_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        if Path("/etc/netset-reconciler/interfaces.yaml").exists():
            pytest.skip("system inventory present")

        with pytest.raises(FileNotFoundError):
            InterfaceInventory()
