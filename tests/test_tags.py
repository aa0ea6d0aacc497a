from drillcraft.core.tags import (
    DEFAULT_TAG,
    get_tags_for_prompt,
    normalize_interest,
    normalize_job_role,
)


def test_job_role_exact_and_alias_matches():
    assert normalize_job_role("product_manager") == "product_manager"
    assert normalize_job_role("Senior Backend Developer") == "software_engineer"
    assert normalize_job_role("UX researcher") == "designer"
    assert normalize_job_role("Astronaut") == DEFAULT_TAG
    assert normalize_job_role("") is None


def test_interest_defaults_to_general_business():
    assert normalize_interest("Travel") == "travel"
    assert normalize_interest("cooking at home") == "food"
    assert normalize_interest("") == DEFAULT_TAG
    assert normalize_interest("knitting") == DEFAULT_TAG


def test_prompt_vocabularies():
    tags = get_tags_for_prompt()
    assert set(tags) == {"job_roles", "interests", "grammar_patterns", "contexts"}
    assert "present_perfect" in tags["grammar_patterns"]
    assert "business_meeting" in tags["contexts"]
