#!/usr/bin/env python3
"""Unit tests for ancestry parsing and scope evaluation."""

import pytest
from ancestry import (
    Ancestor,
    AncestorType,
    ancestors_from_response,
    configured_folders,
    in_scope,
)


def chain(*paths: str) -> list[Ancestor]:
    """Build an ancestry chain from ``<type>/<id>`` paths."""
    ancestors = []
    for path in paths:
        ancestor_type, _, ancestor_id = path.partition("/")
        ancestors.append(Ancestor(AncestorType(ancestor_type), ancestor_id))
    return ancestors


PROJECT_IN_FOLDER = chain(
    "project/projectID", "folder/folderID", "organization/organizationID"
)


class TestAncestorsFromResponse:
    """Test ancestors_from_response function."""

    def test_parse_response(self):
        """Test parsing a getAncestry response."""
        response = {
            "ancestor": [
                {"resourceId": {"type": "project", "id": "projectID"}},
                {"resourceId": {"type": "folder", "id": "folderID"}},
                {"resourceId": {"type": "organization", "id": "organizationID"}},
            ]
        }

        assert ancestors_from_response(response) == PROJECT_IN_FOLDER

    def test_empty_response(self):
        """Test empty responses give an empty ancestry."""
        assert ancestors_from_response({}) == []
        assert ancestors_from_response(None) == []

    def test_unknown_type_skipped(self):
        """Test unknown ancestor types are skipped."""
        response = {
            "ancestor": [
                {"resourceId": {"type": "folders", "id": "folderID"}},
                {"resourceId": {"type": "folder", "id": "other"}},
            ]
        }

        assert ancestors_from_response(response) == chain("folder/other")

    def test_resource_name(self):
        """Test relative resource names of ancestors."""
        assert [a.resource_name for a in PROJECT_IN_FOLDER] == [
            "projects/projectID",
            "folders/folderID",
            "organizations/organizationID",
        ]


class TestInScope:
    """Test in_scope function."""

    def test_folder_in_ancestry(self):
        """Test a configured folder in the ancestry is in scope."""
        assert in_scope(PROJECT_IN_FOLDER, ["folderID"]) is True

    def test_any_configured_folder_matches(self):
        """Test any of several configured folders puts a resource in scope."""
        ancestry = chain("project/p", "folder/folderID1", "organization/o")

        assert in_scope(ancestry, ["folderID", "folderID1"]) is True

    def test_nested_folder_matches(self):
        """Test an outer folder of a nested hierarchy is in scope."""
        ancestry = chain("project/p", "folder/inner", "folder/outer", "organization/o")

        assert in_scope(ancestry, ["outer"]) is True

    def test_order_is_irrelevant(self):
        """Test membership, not position, decides scope."""
        assert in_scope(list(reversed(PROJECT_IN_FOLDER)), ["folderID"]) is True

    def test_other_folder(self):
        """Test a folder outside the configuration is out of scope."""
        ancestry = chain("project/p", "folder/anotherfolderID", "organization/o")

        assert in_scope(ancestry, ["folderID", "folderID1"]) is False

    def test_only_folders_match(self):
        """Test project and organization ids never match folder ids."""
        ancestry = chain("project/folderID", "organization/folderID")

        assert in_scope(ancestry, ["folderID"]) is False

    @pytest.mark.parametrize("folder_ids", [[], [""], ["", ""]])
    def test_no_folders_configured(self, folder_ids):
        """Test nothing is in scope without configured folders."""
        assert in_scope(PROJECT_IN_FOLDER, folder_ids) is False

    def test_empty_ancestry(self):
        """Test a resource without ancestry is out of scope."""
        assert in_scope([], ["folderID"]) is False

    def test_configured_folders_drops_placeholders(self):
        """Test empty folder ids are ignored."""
        assert configured_folders(["", "folderID"]) == {"folderID"}
