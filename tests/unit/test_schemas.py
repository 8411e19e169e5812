"""Tests for request schema validation."""

import uuid

import pytest
from pydantic import ValidationError

from devstack.schemas.analytics import ClickRequest, EmailCaptureRequest
from devstack.schemas.project import ProjectCreate, ProjectReorderRequest, ProjectUpdate
from devstack.schemas.user import (
    OnboardingRequest,
    ProfileUpdate,
    RegisterRequest,
    check_username,
    is_reserved_username,
    password_problems,
)


def _register(**overrides) -> RegisterRequest:
    data = {
        "email": "Dev@Example.com",
        "password": "Secret123",
        "confirm_password": "Secret123",
        "username": "dev-person",
        "display_name": "Dev Person",
        "agree_to_terms": True,
    }
    data.update(overrides)
    return RegisterRequest(**data)


class TestPasswordRules:
    """Tests for password strength rules."""

    def test_valid_password(self) -> None:
        """Test a password meeting every rule."""
        assert password_problems("Secret123") == []

    @pytest.mark.parametrize(
        ("password", "fragment"),
        [
            ("Sh0rt", "at least 8"),
            ("alllower123", "uppercase"),
            ("ALLUPPER123", "lowercase"),
            ("NoDigitsHere", "number"),
            ("Aa1" + "x" * 98, "at most 100"),
        ],
    )
    def test_rule_violations(self, password: str, fragment: str) -> None:
        """Test each broken rule is reported."""
        assert any(fragment in problem for problem in password_problems(password))


class TestUsernameRules:
    """Tests for username format rules."""

    def test_lowercased(self) -> None:
        """Test usernames are stored lowercase."""
        assert check_username("DevPerson") == "devperson"

    @pytest.mark.parametrize("value", ["ab", "a" * 31, "bad name", "bad!", "-lead", "trail_"])
    def test_invalid(self, value: str) -> None:
        """Test length, charset and edge characters are enforced."""
        with pytest.raises(ValueError):
            check_username(value)

    def test_reserved(self) -> None:
        """Test reserved names are detected case-insensitively."""
        assert is_reserved_username("Admin")
        assert not is_reserved_username("alice")


class TestRegisterRequest:
    """Tests for the sign-up payload."""

    def test_valid(self) -> None:
        """Test email and username are normalized."""
        data = _register()
        assert data.email == "dev@example.com"
        assert data.username == "dev-person"

    def test_passwords_must_match(self) -> None:
        """Test mismatched confirmation is rejected."""
        with pytest.raises(ValidationError, match="Passwords don't match"):
            _register(confirm_password="Secret124")

    def test_terms_required(self) -> None:
        """Test terms must be accepted."""
        with pytest.raises(ValidationError, match="terms"):
            _register(agree_to_terms=False)

    def test_weak_password(self) -> None:
        """Test weak passwords fail validation."""
        with pytest.raises(ValidationError):
            _register(password="weak", confirm_password="weak")


class TestProjectSchemas:
    """Tests for project payloads."""

    def test_create_defaults(self) -> None:
        """Test new projects default to draft, public and not featured."""
        project = ProjectCreate(title="  CLI tool ", tech_stack=["Python"])
        assert project.title == "CLI tool"
        assert project.status.value == "draft"
        assert project.is_public is True
        assert project.featured is False

    def test_tech_stack_bounds(self) -> None:
        """Test tech stack needs 1 to 10 non-empty entries."""
        with pytest.raises(ValidationError):
            ProjectCreate(title="x", tech_stack=[])
        with pytest.raises(ValidationError):
            ProjectCreate(title="x", tech_stack=[f"t{i}" for i in range(11)])
        with pytest.raises(ValidationError):
            ProjectCreate(title="x", tech_stack=["Go", "  "])

    def test_blank_url_allowed(self) -> None:
        """Test an empty URL passes validation and is cleared later."""
        project = ProjectCreate(title="x", tech_stack=["Go"], demo_url="")
        assert project.demo_url == ""

    def test_invalid_url_rejected(self) -> None:
        """Test malformed URLs are rejected."""
        with pytest.raises(ValidationError, match="Invalid URL"):
            ProjectCreate(title="x", tech_stack=["Go"], repo_url="github")

    def test_update_is_partial(self) -> None:
        """Test only provided fields are set."""
        update = ProjectUpdate(featured=True)
        assert update.model_dump(exclude_unset=True) == {"featured": True}

    def test_reorder_requires_ids(self) -> None:
        """Test an empty ordering is rejected."""
        with pytest.raises(ValidationError):
            ProjectReorderRequest(project_ids=[])
        assert ProjectReorderRequest(project_ids=[uuid.uuid4()])


class TestProfileSchemas:
    """Tests for profile and onboarding payloads."""

    def test_profile_update_username_normalized(self) -> None:
        """Test username changes follow the sign-up rules."""
        assert ProfileUpdate(username="NewName").username == "newname"

    @pytest.mark.parametrize("color", ["blue", "#0af", "#00AAFF", "#00aaff80", " teal "])
    def test_theme_color_accepts_hex_and_names(self, color: str) -> None:
        assert ProfileUpdate(theme_color=color).theme_color == color.strip()

    @pytest.mark.parametrize(
        "color", ["red}*{display:none}", "#12345", "url(x)", "red;color:x", "#gggggg"]
    )
    def test_theme_color_rejects_css_fragments(self, color: str) -> None:
        """Test only a single color token can reach the page stylesheet."""
        with pytest.raises(ValidationError):
            ProfileUpdate(theme_color=color)

    def test_blank_theme_color_keeps_current(self) -> None:
        assert ProfileUpdate(theme_color="  ").theme_color is None

    def test_onboarding_social_links_validated(self) -> None:
        """Test every social link must be a URL or blank."""
        with pytest.raises(ValidationError):
            OnboardingRequest(
                basic_info={"display_name": "Dev", "job_title": "Engineer"},
                social_links={"github_url": "nope"},
            )

        data = OnboardingRequest(
            basic_info={"display_name": "Dev", "job_title": "Engineer"},
            social_links={"github_url": "https://github.com/dev", "website": ""},
        )
        assert data.social_links.github_url == "https://github.com/dev"


class TestAnalyticsSchemas:
    """Tests for public tracking payloads."""

    def test_click_type_enum(self) -> None:
        """Test only known click types are accepted."""
        assert ClickRequest(click_type="demo").click_type.value == "demo"
        with pytest.raises(ValidationError):
            ClickRequest(click_type="hover")

    def test_email_capture_lowercased(self) -> None:
        """Test captured emails are lowercased."""
        assert EmailCaptureRequest(email="Fan@Example.com").email == "fan@example.com"
