"""Tests for conversion presets."""

from vectorforge.presets import (
    BUILT_IN_PRESETS,
    all_presets,
    describe_settings,
    get_preset,
    matches_preset,
)
from vectorforge.types import ConversionSettings


class TestPresets:
    """Test cases for preset lookup."""

    def test_ids(self):
        """Test the built-in presets in display order."""
        assert [p.id for p in all_presets()] == ["logo", "icon", "illustration", "photo", "minimal"]

    def test_values_in_range(self):
        """Test every preset has valid settings."""
        for preset in BUILT_IN_PRESETS:
            preset.settings.validate()

    def test_get_preset(self):
        """Test looking up a preset by id."""
        logo = get_preset("logo")

        assert logo.name == "Logo"
        assert logo.settings == ConversionSettings(0.6, 0.5, 0.6)
        assert get_preset("poster") is None

    def test_matches_preset(self):
        """Test exact settings are recognised as a preset."""
        assert matches_preset(ConversionSettings(0.85, 0.15, 0.4)).id == "photo"
        assert matches_preset(ConversionSettings()) is None

    def test_all_presets_is_a_copy(self):
        """Test the returned list can be changed safely."""
        presets = all_presets()
        presets.clear()

        assert len(all_presets()) == 5


class TestDescribeSettings:
    """Test cases for describe_settings function."""

    def test_label(self):
        """Test the short percentage label."""
        assert describe_settings(get_preset("logo").settings) == "C60% S50% P60%"
        assert describe_settings(ConversionSettings(0.0, 1.0, 0.25)) == "C0% S100% P25%"
