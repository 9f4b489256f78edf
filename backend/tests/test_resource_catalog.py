"""
Tests unitaires du catalogue d'options (fonctions pures).
"""

import datetime as dt

import pytest

from atlas.services.resource_catalog import (
    build_options,
    default_settings,
    entry_id,
    error_option,
    find_option,
    find_template,
    format_day_label,
    placeholder_options,
)
from atlas.services.resource_types import display_name, normalize_resource_type


# ============================================================
# Types de ressources
# ============================================================

@pytest.mark.parametrize("raw,expected", [
    ("food", "food"),
    ("Kits", "kits"),
    ("kit", "kits"),
    ("kitBag", "kits"),
    ("certificate", "certificates"),
    ("certificatePrinting", "certificatePrinting"),
])
def test_normalize_resource_type(raw, expected):
    assert normalize_resource_type(raw) == expected


def test_normalize_resource_type_inconnu_leve_erreur():
    with pytest.raises(ValueError, match="Invalid resource type"):
        normalize_resource_type("drinks")


def test_display_name():
    assert display_name("food") == "Food"
    assert display_name("kits") == "Kit Bag"
    assert display_name("certificatePrinting") == "Certificate Printing"


# ============================================================
# Food : une option par (jour, repas)
# ============================================================

def test_format_day_label():
    assert format_day_label("2026-01-01") == "Jan 1"
    assert format_day_label("2026-03-15T00:00:00.000Z") == "Mar 15"
    assert format_day_label(dt.date(2026, 12, 25)) == "Dec 25"
    assert format_day_label("pas une date") is None


def test_food_options_aplaties_par_jour_et_repas():
    settings = {
        "days": [
            {"date": "2026-01-01", "meals": [{"name": "Breakfast"}, {"name": "Lunch"}]},
            {"date": "2026-01-02", "meals": [{"name": "Dinner"}]},
        ]
    }
    options = build_options("food", settings)

    assert [o.id for o in options] == ["0_Breakfast", "0_Lunch", "1_Dinner"]
    assert options[0].name == "Breakfast (Jan 1)"
    assert options[2].name == "Dinner (Jan 2)"
    assert options[2].day_index == 1


def test_food_repas_sans_nom_ignore():
    settings = {"days": [{"date": "2026-01-01", "meals": [{"name": ""}, {}, "x", {"name": "Lunch"}]}]}
    assert [o.id for o in build_options("food", settings)] == ["0_Lunch"]


def test_food_date_illisible_nom_sans_libelle():
    settings = {"days": [{"date": None, "meals": [{"name": "Lunch"}]}]}
    assert build_options("food", settings)[0].name == "Lunch"


@pytest.mark.parametrize("settings", [None, {}, {"days": "nope"}, {"days": [None, {"meals": None}]}, []])
def test_food_configuration_malformee_aucune_option(settings):
    assert build_options("food", settings) == []


# ============================================================
# Kits / certificats / impression
# ============================================================

def test_kits_identifiant_synthetise_si_absent():
    settings = {"items": [{"_id": "bag", "name": "Bag"}, {"name": "Pen"}, {"id": 7}]}
    options = build_options("kits", settings)

    assert [o.id for o in options] == ["bag", "kits_1", "7"]
    assert options[2].name == "Unnamed Item"


def test_certificates_repli_sur_templates():
    options = build_options("certificates", {"templates": [{"_id": "att", "name": "Attendance"}]})
    assert [(o.id, o.name) for o in options] == [("att", "Attendance")]


def test_certificate_printing_conserve_les_champs():
    fields = [{"label": "Name", "dataSource": "Registration.personalInfo.fullName"}]
    options = build_options(
        "certificatePrinting",
        {"templates": [{"_id": "tpl1", "name": "Participation", "fields": fields}, {"_id": "tpl2"}]},
    )

    assert options[0].print_fields == fields
    assert options[1].print_fields == []
    assert options[1].name == "Unnamed Template"


def test_option_serialisee_avec_id_et_fields():
    option = build_options("certificatePrinting", {"templates": [{"_id": "t", "name": "T", "fields": []}]})[0]
    dumped = option.model_dump(by_alias=True)
    assert dumped["_id"] == "t"
    assert dumped["fields"] == []


def test_find_template():
    settings = {"templates": [{"name": "Sans id"}, {"_id": "tpl", "name": "Avec id"}]}
    assert find_template(settings, "tpl")["name"] == "Avec id"
    assert find_template(settings, "certificatePrinting_0")["name"] == "Sans id"
    assert find_template(settings, "absent") is None
    assert find_template(None, "tpl") is None


def test_entry_id():
    assert entry_id("kits", {"_id": "a", "id": "b"}, 3) == "a"
    assert entry_id("kits", {}, 3) == "kits_3"


# ============================================================
# Options de repli
# ============================================================

def test_placeholder_options():
    options = placeholder_options("kits")
    assert [o.name for o in options] == ["Kit Bag Option 1", "Kit Bag Option 2"]
    assert all(o.placeholder for o in options)


def test_error_option():
    options = error_option("food")
    assert len(options) == 1
    assert options[0].name == "Error Loading Food Options"
    assert options[0].placeholder


def test_find_option():
    options = placeholder_options("food")
    assert find_option(options, "food_option_2").name == "Food Option 2"
    assert find_option(options, "absent") is None


def test_default_settings_copie_independante():
    first = default_settings("kits")
    first["items"].append({"name": "x"})
    assert default_settings("kits")["items"] == []
