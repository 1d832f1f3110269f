"""Tests for signature models: index formatting, ordering and signature sets."""

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from ArchiveCore.core.errors import SignatureError
from ArchiveCore.core.models import (
    SignatureElement,
    SignatureSet,
    format_index,
    sort_elements,
    validate_signature,
)


def _element(element_id: int, name: str, index: str | None = None) -> SignatureElement:
    return SignatureElement(id=element_id, component_id=1, name=name, index=index)


class TestFormatIndex(unittest.TestCase):
    def test_decimal(self) -> None:
        self.assertEqual(format_index(12, "dec"), "12")

    def test_roman(self) -> None:
        self.assertEqual(format_index(4, "roman"), "IV")
        self.assertEqual(format_index(1994, "roman"), "MCMXCIV")
        self.assertEqual(format_index(4000, "roman"), "4000")

    def test_letters(self) -> None:
        self.assertEqual(format_index(1, "small_char"), "a")
        self.assertEqual(format_index(26, "small_char"), "z")
        self.assertEqual(format_index(27, "small_char"), "aa")
        self.assertEqual(format_index(28, "capital_char"), "AB")

    def test_unknown_type_and_non_positive(self) -> None:
        self.assertEqual(format_index(3, "hex"), "3")
        self.assertEqual(format_index(0, "dec"), "")


class TestElementOrdering(unittest.TestCase):
    def test_numeric_indexes_sort_by_value_before_text(self) -> None:
        elements = [_element(1, "x", "10"), _element(2, "y", "b"), _element(3, "z", "2"), _element(4, "w", "A")]
        self.assertEqual([element.id for element in sort_elements(elements)], [3, 1, 4, 2])

    def test_elements_without_index_sort_by_name(self) -> None:
        elements = [_element(1, "beta"), _element(2, "Alpha"), _element(3, "gamma", "a")]
        self.assertEqual([element.id for element in sort_elements(elements)], [3, 2, 1])

    def test_label(self) -> None:
        self.assertEqual(_element(1, "Poland", "7").label, "[7] Poland")
        self.assertEqual(_element(1, "Poland").label, "Poland")


class TestSignatureSet(unittest.TestCase):
    def test_validate_signature_rejects_bad_paths(self) -> None:
        with self.assertRaises(SignatureError):
            validate_signature([])
        with self.assertRaises(SignatureError):
            validate_signature([1, 0])
        with self.assertRaises(SignatureError):
            validate_signature([1, True])

    def test_duplicates_rejected(self) -> None:
        signatures = SignatureSet("descriptive", ((1, 2),))
        with self.assertRaises(SignatureError):
            signatures.add([1, 2])

    def test_order_sensitive_uniqueness(self) -> None:
        signatures = SignatureSet("descriptive", ((1, 2),)).add([2, 1])
        self.assertEqual(signatures.to_list(), [[1, 2], [2, 1]])
        self.assertIn([2, 1], signatures)

    def test_remove(self) -> None:
        signatures = SignatureSet("topographic", ((5,), (6, 7)))
        self.assertEqual(signatures.remove((5,)).to_list(), [[6, 7]])

    def test_signature_error_is_value_error(self) -> None:
        self.assertTrue(issubclass(SignatureError, ValueError))


if __name__ == "__main__":
    unittest.main()
