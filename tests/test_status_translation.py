"""Gateway vocabulary -> canonical status."""

import pytest

from reconciler.services.status import normalize, translate


@pytest.mark.parametrize(
    "native,expected",
    [
        ("approved", "paid"),
        ("pending", "pending"),
        ("in_process", "pending"),
        ("in_mediation", "pending"),
        ("authorized", "pending"),
        ("rejected", "failed"),
        ("cancelled", "failed"),
        ("refunded", "refunded"),
        ("charged_back", "refunded"),
        ("APPROVED", "paid"),
    ],
)
def test_translate_known_statuses(native, expected):
    assert translate(native) == expected


@pytest.mark.parametrize("native", ["", None, "something_new", "expired"])
def test_translate_unknown_defaults_to_pending(native):
    assert translate(native) == "pending"


def test_normalize_folds_legacy_values():
    assert normalize("PENDING") == "pending"
    assert normalize("approved") == "paid"
    assert normalize(None) == "pending"
    assert normalize("paid") == "paid"
