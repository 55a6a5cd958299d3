"""Tests for derived-dimension transforms."""

import pytest

from ga4explorer.dimensions import transforms


class TestDomain:
    def test_relative_path_uses_placeholder_host(self):
        """Relative page paths resolve against the placeholder origin."""
        assert transforms.domain({}, "/products/shoe") == "example.com"

    def test_query_string_ignored(self):
        assert transforms.domain({}, "/search?q=boots#top") == "example.com"

    def test_absolute_url_keeps_its_host(self):
        """Cross-domain paths come back absolute."""
        assert transforms.domain({}, "https://shop.other.org/cart") == "shop.other.org"

    def test_empty(self):
        assert transforms.domain({}, "") == ""

    def test_unparseable_gives_empty(self):
        """Malformed hosts don't raise."""
        assert transforms.domain({}, "//[broken") == ""


class TestPageTitle:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Shoes - My Store", "Shoes"),
            ("Red - Shoes - My Store", "Red - Shoes"),
            ("No separator here", "No separator here"),
            ("  Too   many\tspaces  - Site", "Too many spaces"),
            ("Hyphen-ated-title", "Hyphen-ated-title"),
            ("", ""),
        ],
    )
    def test_strips_site_suffix(self, raw: str, expected: str):
        assert transforms.page_title({}, raw) == expected


class TestLabelTransforms:
    def test_user_type_labels(self):
        assert transforms.user_type({}, "new") == "New User"
        assert transforms.user_type({}, "returning") == "Returning User"

    def test_user_type_case_insensitive(self):
        assert transforms.user_type({}, "RETURNING") == "Returning User"

    def test_user_type_passthrough(self):
        """Values outside the map pass through unchanged."""
        assert transforms.user_type({}, "(not set)") == "(not set)"

    def test_device_category_labels(self):
        assert transforms.device_category({}, "mobile") == "Mobile"
        assert transforms.device_category({}, "Desktop") == "Desktop"
        assert transforms.device_category({}, "tablet") == "Tablet"

    def test_device_category_unknown_passthrough(self):
        assert transforms.device_category({}, "smarttv") == "smarttv"

    def test_empty_values(self):
        assert transforms.user_type({}, "") == ""
        assert transforms.device_category({}, "") == ""
