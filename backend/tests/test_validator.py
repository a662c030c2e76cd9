import pytest

from formgen.services.form_pipeline.validator import LabelValidator, dice_similarity, normalize_label


@pytest.fixture
def validator():
    return LabelValidator()


def test_normalize_label():
    assert normalize_label("  Date of Birth (MM/DD):") == "date of birth mm dd"
    assert normalize_label(None) == ""


def test_dice_similarity():
    assert dice_similarity("first name", "first name") == 1.0
    assert dice_similarity("abc", "xyz") == 0.0
    assert 0.7 < dice_similarity("first name", "first nme") < 0.9


def test_scrape_labels(validator):
    html = """
    <h1 class="t">Intake Form</h1>
    <fieldset><legend>Contact &amp; Address</legend>
    <label for="a"><span>First</span>   Name</label>
    <label for="b">first name</label>
    </fieldset>
    """

    assert validator.scrape_labels(html) == ["Intake Form", "Contact & Address", "First Name"]


def test_pdf_candidates(validator):
    lines = [
        "First Name:",
        "Patient Signature",
        "www.example.com/forms",
        "Account 1234567",
        "Ok",
        "12/04/2024 - 33/11",
        "First Name:",
    ]

    assert validator.pdf_candidates(lines) == ["First Name", "Patient Signature"]


def test_validate_reports_missing_and_typos(validator):
    html = '<label>First Nme</label><label>Email Address</label>'
    lines = ["First Name:", "Email Address:", "Emergency Contact Phone:"]

    report = validator.validate(html, lines)

    assert report.pdf_label_count == 3
    assert report.ai_label_count == 2
    assert [m.expected for m in report.possible_typos] == ["First Name"]
    assert report.possible_typos[0].best_match == "First Nme"
    assert [m.expected for m in report.missing] == ["Emergency Contact Phone"]
    assert report.has_warnings
    assert report.to_dict()["possible_typos"][0]["score"] == round(report.possible_typos[0].score, 3)


def test_validate_clean_form_has_no_warnings(validator):
    report = validator.validate("<label>Email Address</label>", ["Email Address:"])

    assert not report.has_warnings
