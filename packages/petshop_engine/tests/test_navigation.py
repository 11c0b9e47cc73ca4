"""
Tests for the navigation guard.
"""

from petshop_engine.contracts.types import ModuleKey, PlanType
from petshop_engine.entitlements.navigation import NAV_ITEMS, build_navigation, click, find_entry
from petshop_engine.entitlements.resolver import EntitlementResolver, ModuleConfig
from petshop_engine.entitlements.plans import DEFAULT_MODULES


def resolver_with(**overrides):
    modules = dict(DEFAULT_MODULES)
    for key, value in overrides.items():
        modules[ModuleKey(key)] = value
    return EntitlementResolver(ModuleConfig(business_name="Pet Feliz", plan_type=PlanType.HOTEL, modules=modules))


class TestBuildNavigation:
    """Tests for locked and unlocked sidebar entries."""

    def test_all_items_present(self):
        """Test that locked items stay in the list."""
        entries = build_navigation(resolver_with(mod_hotel=False))
        assert len(entries) == len(NAV_ITEMS)

    def test_hotel_disabled_locks_entry(self):
        """Test that mod_hotel=false locks Hotel & Creche."""
        entries = build_navigation(resolver_with(mod_hotel=False))
        hotel = find_entry(entries, "/hotel-creche")

        assert hotel.locked is True
        assert hotel.href is None
        assert hotel.required_plan == "Pet Shop + Hotel"

    def test_unrestricted_items_never_locked(self):
        """Test that items without a module stay open."""
        entries = build_navigation(EntitlementResolver(None))
        dashboard = find_entry(entries, "/")

        assert dashboard.locked is False
        assert dashboard.href == "/"

    def test_unloaded_config_locks_module_items(self):
        """Test that module items are locked until the config loads."""
        entries = build_navigation(EntitlementResolver(None))
        assert find_entry(entries, "/banho-tosa").locked is True


class TestClick:
    """Tests for clicking sidebar entries."""

    def test_locked_click_does_not_navigate(self):
        """Test that clicking a locked entry is blocked with an upgrade message."""
        hotel = find_entry(build_navigation(resolver_with(mod_hotel=False)), "/hotel-creche")
        result = click(hotel)

        assert result.navigate is False
        assert result.href is None
        assert result.blocked_module == ModuleKey.HOTEL
        assert result.message == "O módulo Hotel & Creche está disponível no plano Pet Shop + Hotel."

    def test_unlocked_click_navigates(self):
        """Test that an enabled entry navigates to its URL."""
        hotel = find_entry(build_navigation(resolver_with(mod_hotel=True)), "/hotel-creche")
        result = click(hotel)

        assert result.navigate is True
        assert result.href == "/hotel-creche"

    def test_find_entry_unknown(self):
        """Test lookup of an unknown URL."""
        assert find_entry(build_navigation(resolver_with()), "/nope") is None
