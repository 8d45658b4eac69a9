"""
Unit tests for CIDR helpers.
"""

import pytest

from maya_storage.exceptions import AddressPoolExhausted, InvalidCIDR
from maya_storage.provisioner.network import cidr


class TestParseNetwork:
    @pytest.mark.unit
    def test_host_bits_allowed(self):
        assert str(cidr.parse_network("172.28.128.7/24")) == "172.28.128.0/24"

    @pytest.mark.unit
    def test_invalid(self):
        for value in (None, "", "10.0.0.0", "10.0.0.0/33", "not-a-cidr/24"):
            with pytest.raises(InvalidCIDR):
                cidr.parse_network(value)

    @pytest.mark.unit
    def test_ipv6_rejected(self):
        with pytest.raises(InvalidCIDR, match="only IPv4"):
            cidr.parse_network("fd00::/64")


class TestSubnetOf:
    @pytest.mark.unit
    def test_same_prefix(self):
        assert cidr.subnet_of("172.28.128.0/24") == "172.28.128.0/24"
        assert cidr.subnet_of("172.28.128.9/24") == "172.28.128.0/24"

    @pytest.mark.unit
    def test_smaller_prefix_is_first_subnet(self):
        assert cidr.subnet_of("10.0.0.0/16", prefixlen=24) == "10.0.0.0/24"

    @pytest.mark.unit
    def test_prefix_does_not_fit(self):
        with pytest.raises(InvalidCIDR, match="does not fit"):
            cidr.subnet_of("10.0.0.0/24", prefixlen=16)


class TestAvailableAddresses:
    @pytest.mark.unit
    def test_ascending_from_first_host(self):
        assert cidr.available_addresses("10.0.0.0/24", 3) == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]

    @pytest.mark.unit
    def test_excluded_addresses_skipped(self):
        ips = cidr.available_addresses("10.0.0.0/24", 2, exclude=["10.0.0.1", "10.0.0.3", "bogus"])
        assert ips == ["10.0.0.2", "10.0.0.4"]

    @pytest.mark.unit
    def test_network_and_broadcast_never_used(self):
        ips = cidr.available_addresses("10.0.0.0/30", 2)
        assert ips == ["10.0.0.1", "10.0.0.2"]

    @pytest.mark.unit
    def test_point_to_point_uses_both_addresses(self):
        assert cidr.available_addresses("10.0.0.0/31", 2) == ["10.0.0.0", "10.0.0.1"]

    @pytest.mark.unit
    def test_zero_count(self):
        assert cidr.available_addresses("10.0.0.0/24", 0) == []

    @pytest.mark.unit
    def test_exhausted(self):
        with pytest.raises(AddressPoolExhausted) as exc_info:
            cidr.available_addresses("10.0.0.0/30", 3)
        assert exc_info.value.kwargs == {"subnet": "10.0.0.0/30", "requested": 3, "available": 2}

    @pytest.mark.unit
    def test_exhausted_counts_exclusions(self):
        with pytest.raises(AddressPoolExhausted) as exc_info:
            cidr.available_addresses("10.0.0.0/29", 5, exclude=["10.0.0.1", "10.0.0.2", "192.168.0.1"])
        assert exc_info.value.kwargs["available"] == 4


@pytest.mark.unit
def test_host_count():
    assert cidr.host_count("10.0.0.0/24") == 254
    assert cidr.host_count("10.0.0.0/31") == 2
    assert cidr.host_count("10.0.0.5/32") == 1
