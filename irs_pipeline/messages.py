"""Message catalog for findings and format errors.

Every finding carries a rule identifier and the parameters used to render it,
so a caller can re-render the same finding in another locale with
:func:`render`.
"""

from __future__ import annotations

import logging
from typing import Any

LOGGER = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"

_CATALOG: dict[str, dict[str, str]] = {
    "en": {
        "field-format": "Field {field}: value {raw!r} is not valid for a {kind} field.",
        "field-too-long": "Field {field}: value {value!r} needs {size} positions, only {length} available.",
        "field-charset": "Field {field}: value {value!r} cannot be written in {encoding}.",
        "unknown-record-type": "Line {line}: unknown record type {code!r}.",
        "record-length": "Line {line}: length={actual}, expected {expected}.",
        "unexpected-record-order": "Line {line}: record {found} not allowed here, expected one of {expected}.",
        "orphan-payee": "Line {line}: payee record before any payer record.",
        "malformed-document": "Malformed document: {problems}",
        "required": "Field {field} is required.",
        "allowed-value": "Field {field}: value {value!r} not in allowed values {allowed}.",
        "value-range": "Field {field}: value {value} outside range [{minimum}, {maximum}].",
        "field-width": "Field {field}: value {value!r} does not fit in {length} positions.",
        "amount-codes": "Field {field}: amount codes {value!r} contain invalid codes {invalid}.",
        "amount-codes-duplicate": "Field {field}: amount codes {value!r} repeat {duplicates}.",
        "vendor-data": "Vendor indicator V requires {field}.",
        "domestic-address": "Field {field}: value {value!r} is not a valid domestic {what}.",
        "payer-without-payees": "Payer {payer} has no payee records.",
        "missing-record": "Missing {kind} record.",
        "payee-count": "End of payer declares {declared} payees, payer group has {actual}.",
        "control-total": "Control total {slot}: declared {declared}, payees sum to {actual}.",
        "undeclared-amount": "Payment amount {slot} is {value} but amount code {slot} is not declared by the payer.",
        "state-totals-filer": "State totals record present but payer is not a combined federal/state filer.",
        "state-totals-count": "State {state} totals declare {declared} payees, {actual} payees carry this code.",
        "state-totals-amount": "State {state} control total {slot}: declared {declared}, payees sum to {actual}.",
        "a-record-count": "End of transmission declares {declared} payer records, file has {actual}.",
        "total-payees": "Field {field}: declares {declared} payees, file has {actual}.",
        "payment-year": "Payment year {value} differs from transmitter payment year {expected}.",
        "sequence-number": "Record sequence number {value}, expected {expected}.",
        "tin-format": "Field {field}: TIN {value!r} must be nine digits and not a repeated digit.",
        "ssn-format": "Field {field}: {value!r} is not a valid SSN or ITIN.",
        "ein-prefix": "Field {field}: {value!r} does not start with a valid EIN prefix.",
        "rule-not-available": "Rule category {category!r} is not available; it was not checked.",
    },
    "fr": {
        "field-format": "Champ {field}: valeur {raw!r} invalide pour un champ {kind}.",
        "field-too-long": "Champ {field}: la valeur {value!r} occupe {size} positions, {length} disponibles.",
        "field-charset": "Champ {field}: la valeur {value!r} ne peut pas etre ecrite en {encoding}.",
        "unknown-record-type": "Ligne {line}: type d'enregistrement inconnu {code!r}.",
        "record-length": "Ligne {line}: longueur={actual} attendue={expected}.",
        "unexpected-record-order": "Ligne {line}: enregistrement {found} hors sequence, attendu {expected}.",
        "orphan-payee": "Ligne {line}: beneficiaire avant tout enregistrement payeur.",
        "malformed-document": "Document mal forme: {problems}",
        "required": "Champ {field} obligatoire.",
        "allowed-value": "Champ {field}: valeur {value!r} hors valeurs autorisees {allowed}.",
        "value-range": "Champ {field}: valeur {value} hors intervalle [{minimum}, {maximum}].",
        "field-width": "Champ {field}: la valeur {value!r} depasse {length} positions.",
        "amount-codes": "Champ {field}: codes montant {value!r} invalides {invalid}.",
        "amount-codes-duplicate": "Champ {field}: codes montant {value!r} en double {duplicates}.",
        "vendor-data": "L'indicateur fournisseur V exige {field}.",
        "domestic-address": "Champ {field}: valeur {value!r} invalide ({what}).",
        "payer-without-payees": "Payeur {payer} sans beneficiaire.",
        "missing-record": "Enregistrement {kind} manquant.",
        "payee-count": "Fin de payeur: {declared} beneficiaires declares, {actual} trouves.",
        "control-total": "Total de controle {slot}: declare {declared}, somme {actual}.",
        "undeclared-amount": "Montant {slot} = {value} alors que le code {slot} n'est pas declare par le payeur.",
        "state-totals-filer": "Totaux d'etat presents mais le payeur n'est pas declarant federal/etat combine.",
        "state-totals-count": "Etat {state}: {declared} beneficiaires declares, {actual} trouves.",
        "state-totals-amount": "Etat {state} total {slot}: declare {declared}, somme {actual}.",
        "a-record-count": "Fin de transmission: {declared} payeurs declares, {actual} trouves.",
        "total-payees": "Champ {field}: {declared} beneficiaires declares, {actual} trouves.",
        "payment-year": "Annee de paiement {value} differente de l'annee du transmetteur {expected}.",
        "sequence-number": "Numero de sequence {value}, attendu {expected}.",
        "tin-format": "Champ {field}: TIN {value!r} doit comporter neuf chiffres non repetes.",
        "ssn-format": "Champ {field}: {value!r} n'est pas un SSN ou ITIN valide.",
        "ein-prefix": "Champ {field}: {value!r} ne commence pas par un prefixe EIN valide.",
        "rule-not-available": "Categorie de regles {category!r} indisponible: non verifiee.",
    },
}


def available_locales() -> list[str]:
    return sorted(_CATALOG)


def render(rule: str, params: dict[str, Any], locale: str = DEFAULT_LOCALE) -> str:
    catalog = _CATALOG.get(locale)
    if catalog is None:
        LOGGER.debug("Unknown locale %s, falling back to %s", locale, DEFAULT_LOCALE)
        catalog = _CATALOG[DEFAULT_LOCALE]
    template = catalog.get(rule) or _CATALOG[DEFAULT_LOCALE].get(rule)
    if template is None:
        return f"{rule}: {params}"
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        LOGGER.debug("Missing parameters for message %s: %s", rule, params)
        return f"{rule}: {params}"
