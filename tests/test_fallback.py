"""
Unit tests for fallback estimates.

Tests bundle selection, determinism and placeholder resource ids.
"""

from decimal import Decimal

import pytest

from az_costguard.core.fallback import (
    FALLBACK_BUNDLES,
    PLACEHOLDER_RESOURCE_GROUP,
    PLACEHOLDER_SUBSCRIPTION,
    base_name,
    generate_fallback,
    match_bundle,
)
from az_costguard.core.parser import derive_service


class TestBaseName:
    """Test base name extraction."""

    def test_posix_path(self):
        assert base_name("infra/modules/test.bicep") == "test.bicep"

    def test_windows_path(self):
        assert base_name("infra\\modules\\test.bicep") == "test.bicep"

    def test_bare_name(self):
        assert base_name("test.bicep") == "test.bicep"


class TestBundleSelection:
    """Test trigger matching."""

    def test_web_app_bundle_for_test_file(self):
        assert match_bundle("test.bicep").name == "webapp"

    def test_storage_bundle(self):
        assert match_bundle("infra/storage.bicep").name == "storage"

    def test_sql_bundle(self):
        assert match_bundle("database.tf").name == "sql"

    def test_vm_bundle(self):
        assert match_bundle("compute/vm.tf").name == "vm"

    def test_case_insensitive(self):
        assert match_bundle("Main.Bicep").name == "webapp"

    def test_priority_order(self):
        """Verify the first matching bundle wins."""
        assert match_bundle("test-storage.bicep").name == "storage"

    def test_only_base_name_is_considered(self):
        """Verify directory names do not trigger bundles."""
        assert match_bundle("storage/network.bicep") is None

    def test_no_match(self):
        assert match_bundle("network.bicep") is None

    def test_bundle_names_unique(self):
        names = [bundle.name for bundle in FALLBACK_BUNDLES]
        assert len(names) == len(set(names))


class TestGenerateFallback:
    """Test synthetic record generation."""

    def test_test_bicep_bundle(self):
        """Verify storage, plan and site records with a zero cost site."""
        records = generate_fallback("test.bicep")

        assert len(records) == 3
        storage, plan, site = records
        assert "/providers/Microsoft.Storage/storageAccounts/" in storage.resource_id
        assert "/providers/Microsoft.Web/serverfarms/" in plan.resource_id
        assert "/providers/Microsoft.Web/sites/" in site.resource_id
        assert storage.service == "Storage"
        assert plan.service == "Web"
        assert site.service == "Web"
        assert site.monthly_cost == Decimal("0")
        assert storage.monthly_cost > 0
        assert plan.monthly_cost > 0

    def test_deterministic(self):
        """Verify same input yields identical output."""
        assert generate_fallback("infra/test.bicep") == generate_fallback("infra/test.bicep")

    def test_depends_on_base_name_only(self):
        assert generate_fallback("a/b/test.bicep") == generate_fallback("c\\test.bicep")

    def test_unmatched_file_yields_empty(self):
        assert generate_fallback("network.bicep") == ()

    @pytest.mark.parametrize("identifier", ["", "/", "\\", "...", "test"])
    def test_never_raises(self, identifier):
        generate_fallback(identifier)

    @pytest.mark.parametrize("identifier", ["test.bicep", "storage.tf", "sql.bicep", "vm.tf"])
    def test_placeholder_resource_ids(self, identifier):
        """Verify ids are parseable ARM paths under the placeholder scope."""
        for record in generate_fallback(identifier):
            segments = record.resource_id.split("/")
            assert segments[:5] == [
                "", "subscriptions", PLACEHOLDER_SUBSCRIPTION,
                "resourceGroups", PLACEHOLDER_RESOURCE_GROUP,
            ]
            assert segments[5] == "providers"
            assert segments[6].startswith("Microsoft.")
            assert record.service == derive_service(record.resource_id)
            assert record.monthly_cost >= 0

    def test_resource_names_sanitized(self):
        records = generate_fallback("My_Test App.bicep")
        assert records[0].resource_id.endswith("/stmytestapp")

    def test_resource_ids_unique_within_file(self):
        for identifier in ("test.bicep", "sql.bicep", "vm.tf"):
            ids = [r.resource_id for r in generate_fallback(identifier)]
            assert len(ids) == len(set(ids))
