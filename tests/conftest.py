"""Shared fixtures: a small preferences document and the host's interfaces."""
import pytest

from netset_reconciler.store.catalog import StoreCatalog
from netset_reconciler.store.entities import InterfaceKind, ProtocolKind, NetworkInterface
from netset_reconciler.store.preferences import PreferencesStore

FULL_STACK = frozenset({ProtocolKind.DNS, ProtocolKind.IPV4, ProtocolKind.IPV6, ProtocolKind.PROXIES})
BRIDGE_STACK = frozenset({ProtocolKind.DNS, ProtocolKind.IPV4, ProtocolKind.IPV6})
LEGACY_STACK = frozenset({ProtocolKind.DNS, ProtocolKind.IPV4})


def _interface(bsd_name, kind, protocols, name=None):
    return NetworkInterface(
        kind=kind,
        type_name=kind.value,
        bsd_name=bsd_name,
        display_name=name or bsd_name,
        supported_protocol_kinds=protocols,
    )


def _service(bsd_name, type_name, name, enabled=True, protocols=None):
    values = {
        "UserDefinedName": name,
        "Interface": {"Type": type_name, "DeviceName": bsd_name, "Hardware": type_name},
    }
    if not enabled:
        values["__INACTIVE__"] = 1
    values.update(protocols or {})
    return values


def _set(name, service_ids, order):
    return {
        "UserDefinedName": name,
        "Network": {
            "Service": {sid: {"__LINK__": f"/NetworkServices/{sid}"} for sid in service_ids},
            "Global": {"IPv4": {"ServiceOrder": list(order)}},
        },
    }


@pytest.fixture
def interfaces():
    """Interfaces present on the host, keyed by BSD name."""
    return {
        "en0": _interface("en0", InterfaceKind.ETHERNET, FULL_STACK, "Ethernet"),
        "en1": _interface("en1", InterfaceKind.IEEE80211, FULL_STACK, "Wi-Fi"),
        "en2": _interface("en2", InterfaceKind.ETHERNET, FULL_STACK, "Thunderbolt Ethernet"),
        "bridge0": _interface("bridge0", InterfaceKind.BRIDGE, BRIDGE_STACK),
        "ppp0": _interface("ppp0", InterfaceKind.PPP, LEGACY_STACK),
        "en5": _interface("en5", InterfaceKind.ETHERNET, FULL_STACK, "USB Ethernet"),
        "bridge1": _interface("bridge1", InterfaceKind.BRIDGE, BRIDGE_STACK),
        "ppp1": _interface("ppp1", InterfaceKind.PPP, LEGACY_STACK),
    }


@pytest.fixture
def document():
    """
    Current set "Home" with one service per decision branch:

        SVC-WIFI    IPv6-capable, no IPv6            -> cloned, IPv6 added
        SVC-ETH     enabled with IPv6                -> left alone
        SVC-BRIDGE  bridge                           -> dropped
        SVC-OFF     disabled, IPv6 disabled          -> cloned, both enabled
        SVC-PPP     no IPv6 support                  -> left alone
    """
    ipv4 = {"IPv4": {"ConfigMethod": "DHCP"}}
    ipv6 = {"IPv6": {"ConfigMethod": "Automatic"}}
    services = {
        "SVC-WIFI": _service("en1", "IEEE80211", "Wi-Fi", protocols={**ipv4, "DNS": {}}),
        "SVC-ETH": _service("en0", "Ethernet", "Ethernet", protocols={**ipv4, **ipv6}),
        "SVC-BRIDGE": _service("bridge0", "Bridge", "Bridge", protocols={**ipv4, **ipv6}),
        "SVC-OFF": _service(
            "en2", "Ethernet", "Thunderbolt Ethernet", enabled=False,
            protocols={**ipv4, "IPv6": {"ConfigMethod": "Automatic", "__INACTIVE__": 1}},
        ),
        "SVC-PPP": _service("ppp0", "PPP", "Modem", protocols=ipv4),
    }
    home = ["SVC-WIFI", "SVC-ETH", "SVC-BRIDGE", "SVC-OFF", "SVC-PPP"]
    return {
        "CurrentSet": "/Sets/SET-HOME",
        "Sets": {
            "SET-HOME": _set("Home", home, home),
            "SET-WORK": _set("Work", ["SVC-ETH"], ["SVC-ETH"]),
        },
        "NetworkServices": services,
    }


@pytest.fixture
def store(document):
    """In-memory store holding ``document`` as its committed state."""
    return PreferencesStore(initial=document)


@pytest.fixture
def catalog(store, interfaces):
    return StoreCatalog(store, interfaces.values())


@pytest.fixture
def inventory_yaml(tmp_path):
    """The ``interfaces`` fixture written as an inventory file."""
    path = tmp_path / "interfaces.yaml"
    path.write_text(
        """
interfaces:
  en0:
    type: Ethernet
    name: Ethernet
    protocols: [DNS, IPv4, IPv6, Proxies]
  en1:
    type: IEEE80211
    name: Wi-Fi
    hardware_address: "a4:83:e7:00:00:01"
    protocols: [DNS, IPv4, IPv6, Proxies]
  en2:
    type: Ethernet
    name: Thunderbolt Ethernet
    protocols: [DNS, IPv4, IPv6, Proxies]
  bridge0:
    type: Bridge
    protocols: [DNS, IPv4, IPv6]
    members: [en0, en2]
  ppp0:
    type: PPP
    protocols: [DNS, IPv4]
  en5:
    type: Ethernet
    name: USB Ethernet
    protocols: [DNS, IPv4, IPv6, Proxies]
"""
    )
    return path
