"""Unit tests for canonical identity derivation."""

import hashlib

import pytest

from mock_idp.idp.identity import derive_identity, email_digest, names_from_email
from mock_idp.models.identity import CanonicalIdentity, ClaimSet, DirectoryRecord


class TestNamesFromEmail:
    """Tests for first/last name derivation from an email local part."""

    @pytest.mark.parametrize(
        "email, expected",
        [
            ("jane.doe@example.com", ("Jane", "Doe")),
            ("john_smith-x@example.com", ("John", "Smith")),
            ("mary-ann@example.com", ("Mary", "Ann")),
            ("singleword@example.com", ("Singleword", "Singleword")),
            ("JANE.DOE@example.com", ("Jane", "Doe")),
            ("jane..doe@example.com", ("Jane", "")),
            ("-jane@example.com", ("", "Jane")),
            ("jane.@example.com", ("Jane", "")),
            ("jane_-doe@example.com", ("Jane", "")),
        ],
    )
    def test_name_derivation(self, email, expected):
        """Test separators and capitalization of the local part."""
        assert names_from_email(email) == expected


class TestDeriveIdentity:
    """Tests for derive_identity()."""

    def test_directory_values_win(self):
        """Test directory attributes take priority over email fallbacks."""
        # Arrange
        record = DirectoryRecord(
            dn="cn=jane,dc=glauth,dc=com",
            mail="jane.doe@corp.example.com",
            uid="jdoe",
            given_name="Janet",
            surname="Dough",
            employee_id="1001",
        )

        # Act
        identity = derive_identity(record, "jane.doe@example.com", fallback_subject_id="alt-1001")

        # Assert
        assert identity == CanonicalIdentity(
            subject_id="1001",
            email="jane.doe@corp.example.com",
            first_name="Janet",
            last_name="Dough",
        )

    def test_uid_used_when_employee_id_missing(self):
        """Test uid is the subject id when the record has no employee id."""
        record = DirectoryRecord(dn="cn=jane,dc=glauth,dc=com", uid="jdoe")

        identity = derive_identity(record, "jane.doe@example.com", fallback_subject_id="alt-1001")

        assert identity.subject_id == "jdoe"

    def test_caller_subject_id_used_when_record_has_no_ids(self):
        """Test the caller-supplied subject id is the next fallback."""
        record = DirectoryRecord(dn="cn=jane,dc=glauth,dc=com")

        identity = derive_identity(record, "jane.doe@example.com", fallback_subject_id="alt-1001")

        assert identity.subject_id == "alt-1001"

    def test_names_fall_back_to_email_local_part(self):
        """Test missing given name and surname come from the email."""
        # Arrange
        record = DirectoryRecord(dn="cn=jane,dc=glauth,dc=com", employee_id="1001")

        # Act
        identity = derive_identity(record, "jane.doe@example.com")

        # Assert
        assert identity.first_name == "Jane"
        assert identity.last_name == "Doe"
        assert identity.email == "jane.doe@example.com"

    def test_digest_when_nothing_else_known(self):
        """Test the email digest is used with no record and no fallback."""
        # Act
        identity = derive_identity(None, "jane.doe@example.com")

        # Assert
        expected = hashlib.sha256(b"jane.doe@example.com").hexdigest()
        assert identity.subject_id == expected
        assert email_digest("jane.doe@example.com") == expected

    def test_derivation_is_deterministic(self):
        """Test that the same inputs give equal identities."""
        record = DirectoryRecord(dn="cn=jane,dc=glauth,dc=com", uid="jdoe")

        first = derive_identity(record, "jane.doe@example.com")
        second = derive_identity(record, "jane.doe@example.com")

        assert first == second


class TestIdentityModels:
    """Tests for the identity dataclasses."""

    def test_empty_subject_id_rejected(self):
        """Test CanonicalIdentity never holds an empty subject id."""
        with pytest.raises(ValueError, match="subject_id"):
            CanonicalIdentity(subject_id="", email="a@b.com", first_name="A", last_name="B")

    def test_to_claims(self):
        """Test the identity claim mapping."""
        identity = CanonicalIdentity(
            subject_id="1001", email="jane.doe@example.com", first_name="Jane", last_name="Doe"
        )

        assert identity.to_claims() == {
            "id": "1001",
            "email": "jane.doe@example.com",
            "firstName": "Jane",
            "lastName": "Doe",
        }

    def test_claim_set_to_dict(self, claim_set):
        """Test ClaimSet serialization carries the raw identity."""
        # Act
        data = claim_set.to_dict()

        # Assert
        assert data["email"] == "jane.doe@example.com"
        assert data["subjectId"] == "1001"
        assert data["raw"]["first_name"] == "Jane"

    def test_claim_sets_compare_by_value(self, claim_set):
        """Test that equal claim sets built separately are equal."""
        other = ClaimSet(
            email=claim_set.email,
            subject_id=claim_set.subject_id,
            identity=derive_identity(None, "jane.doe@example.com", fallback_subject_id="1001"),
        )

        assert other == claim_set
