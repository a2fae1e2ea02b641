"""
Unit tests for sentence segmentation.

Every sentence must be a literal span of the body it came from, whatever
typography the sender used.
"""

import pytest

from inbox_actions.email_processing.extraction.segmenter import (
    Sentence,
    normalize_typography,
    split_sentences,
)


def texts(body):
    return [sentence.text for sentence in split_sentences(body)]


class TestNormalizeTypography:
    """Tests for the length-preserving typography mapping."""

    def test_apostrophes_quotes_and_spaces(self):
        assert normalize_typography("l’équipe : « ok »") == "l'équipe : \" ok \""

    def test_length_is_preserved(self):
        body = "Peux-tu m’envoyer “le devis” ?"
        assert len(normalize_typography(body)) == len(body)

    @pytest.mark.parametrize("value", [None, 42, b"bytes"])
    def test_non_string_input(self, value):
        assert normalize_typography(value) == ""


class TestSplitSentences:
    """Tests for split_sentences."""

    @pytest.mark.parametrize("body", ["", "   \n\t ", None, 12])
    def test_empty_or_invalid_body(self, body):
        assert split_sentences(body) == []

    def test_sentence_final_punctuation(self):
        assert texts("Bonjour Paul. Peux-tu venir demain ? Merci !") == [
            "Bonjour Paul", "Peux-tu venir demain", "Merci",
        ]

    def test_line_breaks_split(self):
        assert texts("Bonjour\nEnvoie le devis\r\nMerci") == ["Bonjour", "Envoie le devis", "Merci"]

    def test_list_separators_split(self):
        assert texts("Pour demain : envoie le devis ; appelle Paul") == [
            "Pour demain", "envoie le devis", "appelle Paul",
        ]

    def test_decimal_numbers_and_times_do_not_split(self):
        assert texts("Le prix est de 3.5 euros à 10:30. Merci") == [
            "Le prix est de 3.5 euros à 10:30", "Merci",
        ]

    def test_version_numbers_do_not_split(self):
        assert texts("Valide la maquette v2.0 stp") == ["Valide la maquette v2.0 stp"]

    @pytest.mark.parametrize("body, expected", [
        ("Voir M. Dupont demain. Ok", ["Voir M. Dupont demain", "Ok"]),
        ("Appelle Mme. Martin, cf. le dossier", ["Appelle Mme. Martin, cf. le dossier"]),
        ("Prévoir stylos, papier, etc. pour la réunion", ["Prévoir stylos, papier, etc. pour la réunion"]),
    ])
    def test_abbreviations_do_not_split(self, body, expected):
        assert texts(body) == expected

    def test_list_markers_are_stripped(self):
        body = "- envoie le rapport\n• appelle Paul\n* valide le devis\n1. relance le client\n2) paie la facture"
        assert texts(body) == [
            "envoie le rapport", "appelle Paul", "valide le devis", "relance le client", "paie la facture",
        ]

    def test_wrapping_quotes_are_stripped(self):
        assert texts("« Envoie le devis »") == ["Envoie le devis"]

    def test_spans_are_literal_substrings(self):
        body = (
            "Bonjour,\n\n"
            "Peux-tu m’envoyer le devis d’ici jeudi ? "
            "Il faudrait aussi valider le budget.\n"
            "- rappelle M. Durand ; paie la facture FA-12\n"
        )
        sentences = split_sentences(body)
        assert sentences
        for sentence in sentences:
            assert isinstance(sentence, Sentence)
            assert body[sentence.start:sentence.end] == sentence.text
            assert sentence.text.strip() == sentence.text

    def test_typographic_apostrophes_kept_in_text(self):
        body = "Peux-tu m’envoyer le devis ?"
        assert texts(body) == ["Peux-tu m’envoyer le devis"]

    def test_order_follows_body(self):
        sentences = split_sentences("Un. Deux. Trois")
        assert [s.start for s in sentences] == sorted(s.start for s in sentences)
