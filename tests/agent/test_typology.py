"""
Tests for problem typology resolution and seller-requirement selection.
"""
import pytest

from agent_labs.agent.typology import (
    NO_REQUIREMENTS_FOUND,
    filter_by_typology,
    format_requirements,
    is_document_like,
    normalize_key,
    resolve_typology,
)
from agent_labs.domain.models import ProblemTypology
from tests.fakes import make_result


class TestNormalizeKey:

    def test_strips_accents_case_and_punctuation(self):
        assert normalize_key("  Écran CASSÉ !! ") == "ecran casse"

    def test_bullet_prefix_removed(self):
        assert normalize_key("- Photo du colis") == "photo du colis"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_is_empty(self, text):
        assert normalize_key(text) == ""


class TestResolveTypology:

    @pytest.mark.parametrize("text, expected", [
        ("Le produit ne fonctionne pas", ProblemTypology.MALFUNCTION),
        ("L'écran est cassé", ProblemTypology.DAMAGED),
        ("J'ai reçu le mauvais modèle", ProblemTypology.WRONG_ITEM),
        ("Il manque des pièces dans le carton", ProblemTypology.MISSING_PARTS),
        ("Je n'ai pas reçu mon colis", ProblemTypology.DELIVERY),
        ("Le numéro de suivi ne marche plus sur le site", ProblemTypology.MALFUNCTION),
        ("Je voudrais faire jouer la garantie", ProblemTypology.WARRANTY),
        ("La veste est trop petite", ProblemTypology.SIZE),
        ("Je veux être remboursé", ProblemTypology.REFUND),
    ])
    def test_keywords(self, text, expected):
        assert resolve_typology(text) is expected

    def test_wrong_item_wins_over_damage(self):
        # Both tables match; the first table in order wins
        assert resolve_typology("Pas le bon produit et en plus il est cassé") is ProblemTypology.WRONG_ITEM

    @pytest.mark.parametrize("text", [None, "", "Bonjour, j'ai une question"])
    def test_unknown(self, text):
        assert resolve_typology(text) is ProblemTypology.UNKNOWN


class TestFilterByTypology:

    @pytest.fixture
    def results(self):
        return [
            make_result("delivery", "Problème de livraison"),
            make_result("damaged", "Produit endommagé ou cassé"),
            make_result("defective", "Produit défectueux ou qui ne fonctionne pas"),
        ]

    def test_matching_sections_first(self, results):
        ordered = filter_by_typology(results, ProblemTypology.MALFUNCTION)
        assert [r.record.section_id for r in ordered] == ["defective", "delivery", "damaged"]

    def test_unknown_keeps_order(self, results):
        ordered = filter_by_typology(results, ProblemTypology.UNKNOWN)
        assert ordered == results

    def test_no_match_keeps_order(self, results):
        ordered = filter_by_typology(results, ProblemTypology.WARRANTY)
        assert ordered == results

    def test_wrong_item_falls_back_to_non_damage_sections(self):
        results = [
            make_result("damaged", "Produit endommagé ou cassé"),
            make_result("delivery", "Problème de livraison"),
        ]
        ordered = filter_by_typology(results, ProblemTypology.WRONG_ITEM)
        assert [r.record.section_id for r in ordered] == ["delivery", "damaged"]


class TestDocumentLike:

    @pytest.mark.parametrize("line", [
        "- Photo du produit endommagé",
        "- Facture d'achat",
        "- Numéro de commande",
    ])
    def test_documents(self, line):
        assert is_document_like(line)

    def test_tip(self):
        assert not is_document_like("- Vérifier que l'appareil est bien chargé")


class TestFormatRequirements:

    def test_documents_before_tips_shorter_first(self):
        content = "\n".join([
            "Le vendeur demandera :",
            "- Vérifier que l'appareil est bien chargé",
            "- Photo du produit",
            "- Numéro de série de l'appareil",
            "- Facture d'achat",
        ])
        text = format_requirements([
            make_result("defective", content=content),
            make_result("damaged", content="- Photo de l'emballage"),
        ])
        assert text.splitlines() == [
            "- Facture d'achat",
            "- Photo du produit",
            "- Numéro de série de l'appareil",
        ]

    def test_deduplicates_across_sections(self):
        text = format_requirements([
            make_result("delivery", content="- Photo du colis\n- Bon de livraison"),
            make_result("tracking", content="- photo du colis!\n- Numéro de suivi"),
        ])
        assert text.splitlines() == [
            "- Photo du colis",
            "- Bon de livraison",
            "- Numéro de suivi",
        ]

    def test_at_most_three(self):
        text = format_requirements([
            make_result("a", content="- Photo 1\n- Photo 2"),
            make_result("b", content="- Photo 3\n- Photo 4"),
        ])
        assert len(text.splitlines()) == 3

    def test_no_bullets(self):
        assert format_requirements([make_result("a", content="Texte libre.")]) == NO_REQUIREMENTS_FOUND

    def test_no_results(self):
        assert format_requirements([]) == NO_REQUIREMENTS_FOUND
