"""Tests for the sandbox capability policy."""

from __future__ import annotations

from omniview.grid.capabilities import (
    BASE_CAPABILITIES,
    capabilities_for,
    grants_same_origin,
    sandbox_attribute,
)
from omniview.grid.protocols import Capability, IsolationMode


class TestCapabilitiesFor:
    """Same-origin is the only capability that depends on the mode."""

    def test_no_isolation_grants_same_origin(self) -> None:
        caps = capabilities_for(set())
        assert Capability.SAME_ORIGIN in caps
        assert caps[-1] is Capability.SAME_ORIGIN

    def test_stateless_drops_same_origin(self) -> None:
        caps = capabilities_for({IsolationMode.STATELESS})
        assert Capability.SAME_ORIGIN not in caps
        assert caps == BASE_CAPABILITIES

    def test_unique_identity_drops_same_origin(self) -> None:
        assert Capability.SAME_ORIGIN not in capabilities_for({IsolationMode.UNIQUE_IDENTITY})

    def test_cache_bust_keeps_same_origin(self) -> None:
        assert Capability.SAME_ORIGIN in capabilities_for({IsolationMode.CACHE_BUST})

    def test_base_set_always_present_in_order(self) -> None:
        for mode in (set(), {IsolationMode.STATELESS}, set(IsolationMode)):
            assert capabilities_for(mode)[: len(BASE_CAPABILITIES)] == BASE_CAPABILITIES

    def test_no_duplicates(self) -> None:
        caps = capabilities_for(set())
        assert len(caps) == len(set(caps))

    def test_grants_same_origin(self) -> None:
        assert grants_same_origin([]) is True
        assert grants_same_origin([IsolationMode.CACHE_BUST]) is True
        assert grants_same_origin([IsolationMode.STATELESS, IsolationMode.CACHE_BUST]) is False


class TestSandboxAttribute:
    """Rendering capabilities as an attribute string."""

    def test_standard_attribute(self) -> None:
        assert sandbox_attribute(capabilities_for(set())) == (
            "allow-scripts allow-forms allow-popups allow-modals "
            "allow-popups-to-escape-sandbox allow-downloads allow-same-origin"
        )

    def test_stateless_attribute(self) -> None:
        attribute = sandbox_attribute(capabilities_for({IsolationMode.STATELESS}))
        assert "allow-same-origin" not in attribute
        assert attribute.startswith("allow-scripts ")

    def test_empty(self) -> None:
        assert sandbox_attribute([]) == ""
