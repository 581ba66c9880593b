"""
Unit tests for IaC file selection.
"""

import pytest

from az_costguard.core.iac_files import (
    ARM,
    BICEP,
    TERRAFORM,
    filter_iac_files,
    iac_file_type,
    is_arm_template,
    is_iac_file,
)


class TestFileTypes:
    """Test IaC flavour detection."""

    def test_bicep(self):
        assert iac_file_type("infra/main.bicep") == BICEP

    def test_terraform(self):
        assert iac_file_type("infra/main.tf") == TERRAFORM

    def test_arm_template(self):
        assert iac_file_type("deploy/azuredeploy.json") == ARM

    def test_other_file(self):
        assert iac_file_type("README.md") is None


class TestArmTemplates:
    """Test ARM template heuristics."""

    @pytest.mark.parametrize("path", [
        "azuredeploy.json",
        "deploy/mainTemplate.json",
        "nested/storage.nested.json",
        "linkedStorage.json",
        "repo/templates/storage.json",
        "repo/arm/storage.json",
        "repo/bicep/params.json",
        "repo/infrastructure/storage.json",
    ])
    def test_detected(self, path):
        assert is_arm_template(path)

    @pytest.mark.parametrize("path", [
        "package.json",
        "src/settings.json",
        "template.yaml",
    ])
    def test_not_detected(self, path):
        assert not is_arm_template(path)


class TestFiltering:
    """Test changed-file filtering."""

    @pytest.mark.parametrize("path", [
        "repo/.github/workflows/template.json",
        "web/node_modules/pkg/main.tf",
        "infra/.terraform/modules/main.tf",
        "src/bin/template.json",
        "src/obj/template.json",
        "out/Debug/main.bicep",
        "out/Release/main.bicep",
        "mocked-main.bicep",
        "app/template.sourcelink.json",
    ])
    def test_excluded(self, path):
        assert not is_iac_file(path)

    def test_order_preserved(self):
        paths = ["b.tf", "README.md", "a.bicep", "azuredeploy.json", "src/app.py"]
        assert filter_iac_files(paths) == ["b.tf", "a.bicep", "azuredeploy.json"]

    def test_accepts_generator(self):
        assert filter_iac_files(p for p in ["main.bicep"]) == ["main.bicep"]

    def test_empty(self):
        assert filter_iac_files([]) == []
