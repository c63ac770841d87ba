"""Tests for the entity catalog."""
from netset_reconciler.store.catalog import StoreCatalog
from netset_reconciler.store.entities import (
    InterfaceKind,
    ProtocolKind,
    NetworkInterface,
)
from netset_reconciler.store.port import STATUS_INVALID_ARGUMENT, STATUS_KEY_EXISTS, STATUS_NO_KEY


class TestEntities:
    """Tests for entity helpers."""

    def test_kind_parsing(self):
        assert InterfaceKind.from_string("Bridge") == InterfaceKind.BRIDGE
        assert InterfaceKind.from_string("6to4") == InterfaceKind.SIX_TO_FOUR
        assert InterfaceKind.from_string("Tunnel") is None
        assert InterfaceKind.from_string(None) is None
        assert ProtocolKind.from_string("IPv6") == ProtocolKind.IPV6
        assert ProtocolKind.from_string("AppleTalk") is None

    def test_same_device_prefers_bsd_name(self):
        a = NetworkInterface(kind=InterfaceKind.ETHERNET, bsd_name="en0", hardware_address="aa")
        b = NetworkInterface(kind=InterfaceKind.ETHERNET, bsd_name="en0", hardware_address="bb")
        c = NetworkInterface(kind=InterfaceKind.ETHERNET, bsd_name="en1", hardware_address="aa")

        assert a.same_device(b)
        assert not a.same_device(c)

    def test_same_device_by_hardware_address(self):
        a = NetworkInterface(kind=InterfaceKind.MODEM, hardware_address="AA:BB")
        b = NetworkInterface(kind=InterfaceKind.MODEM, hardware_address="aa:bb")

        assert a.same_device(b)


class TestReading:
    """Tests for catalog lookups."""

    def test_find_service(self, catalog, interfaces):
        service = catalog.find_service("SVC-OFF")

        assert service.name == "Thunderbolt Ethernet"
        assert not service.enabled
        assert service.interface == interfaces["en2"]
        ipv6 = service.find_protocol(ProtocolKind.IPV6)
        assert ipv6 is not None and not ipv6.enabled
        assert "__INACTIVE__" not in ipv6.configuration

    def test_find_set(self, catalog):
        home = catalog.find_set("SET-HOME")

        assert home.name == "Home"
        assert home.service_ids == ["SVC-WIFI", "SVC-ETH", "SVC-BRIDGE", "SVC-OFF", "SVC-PPP"]
        assert home.priority_order == ("SVC-WIFI", "SVC-ETH", "SVC-BRIDGE", "SVC-OFF", "SVC-PPP")

    def test_find_missing(self, catalog):
        assert catalog.find_set("NOPE") is None
        assert catalog.find_service("NOPE") is None

    def test_dangling_link_skipped(self, catalog, store):
        values = store.get_dictionary("/Sets/SET-WORK")
        values["Network"]["Service"]["GONE"] = {"__LINK__": "/NetworkServices/GONE"}
        store.set_dictionary("/Sets/SET-WORK", values)

        assert catalog.find_set("SET-WORK").service_ids == ["SVC-ETH"]
        assert catalog.linked_service_ids("SET-WORK") == ["SVC-ETH", "GONE"]
        assert catalog.linked_service_ids("NOPE") == []

    def test_unknown_interface_has_no_capabilities(self, store):
        catalog = StoreCatalog(store)

        service = catalog.find_service("SVC-ETH")

        assert service.interface.kind == InterfaceKind.ETHERNET
        assert service.interface.bsd_name == "en0"
        assert not service.interface.supports_protocol(ProtocolKind.IPV6)

    def test_current_set(self, catalog):
        assert catalog.current_set_id() == "SET-HOME"
        assert catalog.get_current_set().name == "Home"

    def test_no_current_set(self, catalog, store):
        store.remove_path("/CurrentSet")

        assert catalog.current_set_id() is None
        assert catalog.get_current_set() is None

    def test_list_entities(self, catalog):
        assert {s.id for s in catalog.list_sets()} == {"SET-HOME", "SET-WORK"}
        assert len(catalog.list_services()) == 5
        assert len(catalog.list_interfaces()) == 8


class TestSetMutators:
    """Tests for membership, ordering and current-set mutators."""

    def test_add_and_remove_membership(self, catalog):
        assert catalog.add_service_to_set("SET-WORK", "SVC-WIFI")
        assert catalog.find_set("SET-WORK").service_ids == ["SVC-ETH", "SVC-WIFI"]

        assert catalog.remove_service_from_set("SET-WORK", "SVC-WIFI")
        assert catalog.find_set("SET-WORK").service_ids == ["SVC-ETH"]

    def test_add_duplicate_membership(self, catalog):
        assert not catalog.add_service_to_set("SET-WORK", "SVC-ETH")
        assert catalog.last_error().code == STATUS_KEY_EXISTS

    def test_one_service_per_interface(self, catalog, interfaces):
        """A second service for en0 cannot join a set that already covers en0."""
        service_id = catalog.create_service(interfaces["en0"])

        assert not catalog.add_service_to_set("SET-WORK", service_id)
        assert catalog.last_error().code == STATUS_KEY_EXISTS

    def test_remove_missing_membership(self, catalog):
        assert not catalog.remove_service_from_set("SET-WORK", "SVC-WIFI")
        assert catalog.last_error().code == STATUS_NO_KEY

    def test_set_priority_order(self, catalog):
        assert catalog.set_priority_order("SET-WORK", ["SVC-ETH", "SVC-WIFI"])
        assert catalog.find_set("SET-WORK").priority_order == ("SVC-ETH", "SVC-WIFI")

    def test_set_current(self, catalog, store):
        assert catalog.set_current("SET-WORK")
        assert store.get_value("CurrentSet") == "/Sets/SET-WORK"

        assert not catalog.set_current("NOPE")
        assert catalog.last_error().code == STATUS_NO_KEY

    def test_remove_set(self, catalog):
        assert catalog.remove_set("SET-WORK")
        assert catalog.find_set("SET-WORK") is None
        assert catalog.find_service("SVC-ETH") is not None

    def test_current_set_cannot_be_removed(self, catalog):
        assert not catalog.remove_set("SET-HOME")
        assert catalog.last_error().code == STATUS_INVALID_ARGUMENT
        assert catalog.find_set("SET-HOME") is not None


class TestServiceMutators:
    """Tests for service creation, removal and protocol mutators."""

    def test_remove_service_unlinks_everywhere(self, catalog):
        """Removal unlinks from every set; priority orders keep the stale id."""
        assert catalog.remove_service("SVC-ETH")

        assert catalog.find_service("SVC-ETH") is None
        home = catalog.find_set("SET-HOME")
        assert "SVC-ETH" not in home.service_ids
        assert "SVC-ETH" in home.priority_order
        assert catalog.find_set("SET-WORK").service_ids == []

    def test_remove_missing_service(self, catalog):
        assert not catalog.remove_service("NOPE")
        assert catalog.last_error().code == STATUS_NO_KEY

    def test_create_service(self, catalog, interfaces, store):
        service_id = catalog.create_service(interfaces["en5"])

        values = store.get_dictionary(f"/NetworkServices/{service_id}")
        assert values["UserDefinedName"] == "USB Ethernet"
        assert values["Interface"] == {
            "Type": "Ethernet",
            "DeviceName": "en5",
            "Hardware": "Ethernet",
            "UserDefinedName": "USB Ethernet",
        }
        assert catalog.find_service(service_id).protocols == ()

    def test_wifi_hardware_is_airport(self, catalog, interfaces, store):
        service_id = catalog.create_service(interfaces["en1"])

        assert store.get_dictionary(f"/NetworkServices/{service_id}")["Interface"]["Hardware"] == "AirPort"

    def test_add_protocol(self, catalog):
        assert catalog.add_protocol_to_service("SVC-WIFI", ProtocolKind.IPV6)

        ipv6 = catalog.find_service("SVC-WIFI").find_protocol(ProtocolKind.IPV6)
        assert ipv6.enabled
        assert ipv6.configuration == {"ConfigMethod": "Automatic"}

    def test_add_existing_protocol_fails(self, catalog):
        assert not catalog.add_protocol_to_service("SVC-ETH", ProtocolKind.IPV6)
        assert catalog.last_error().code == STATUS_KEY_EXISTS

    def test_establish_default_configuration(self, catalog, interfaces, store):
        """Defaults cover each supported protocol not already present."""
        service_id = catalog.create_service(interfaces["en5"])
        catalog.add_protocol_to_service(service_id, ProtocolKind.IPV6)

        assert catalog.establish_default_configuration(service_id)

        values = store.get_dictionary(f"/NetworkServices/{service_id}")
        assert values["IPv4"] == {"ConfigMethod": "DHCP"}
        assert values["IPv6"] == {"ConfigMethod": "Automatic"}
        assert values["DNS"] == {}
        assert values["Proxies"]["FTPPassive"] == 1
        assert "SMB" not in values

    def test_default_configuration_is_not_shared(self, catalog, interfaces, store):
        first = catalog.create_service(interfaces["en5"])
        second = catalog.create_service(interfaces["en2"])
        catalog.establish_default_configuration(first)
        catalog.establish_default_configuration(second)

        values = store.get_dictionary(f"/NetworkServices/{first}")
        values["Proxies"]["ExceptionsList"].append("example.com")
        store.set_dictionary(f"/NetworkServices/{first}", values)

        assert "example.com" not in store.get_dictionary(f"/NetworkServices/{second}")["Proxies"]["ExceptionsList"]

    def test_toggle_service_enabled(self, catalog, store):
        assert catalog.set_service_enabled("SVC-ETH", False)
        assert store.get_dictionary("/NetworkServices/SVC-ETH")["__INACTIVE__"] == 1

        assert catalog.set_service_enabled("SVC-ETH", True)
        assert "__INACTIVE__" not in store.get_dictionary("/NetworkServices/SVC-ETH")

    def test_toggle_protocol_enabled(self, catalog):
        assert catalog.set_protocol_enabled("SVC-OFF", ProtocolKind.IPV6, True)
        assert catalog.find_service("SVC-OFF").find_protocol(ProtocolKind.IPV6).enabled

    def test_toggle_missing_protocol(self, catalog):
        assert not catalog.set_protocol_enabled("SVC-WIFI", ProtocolKind.IPV6, True)
        assert catalog.last_error().code == STATUS_NO_KEY
