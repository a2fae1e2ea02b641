"""
Declarative French phrasing rules for action extraction.

The rule table is an ordered tuple: rules are tried top to bottom for every
sentence and the first accepted match wins. Adding a phrasing means adding
one ``ActionRule`` here (and a regression test), never touching the matcher.

All patterns run against typography-normalized text (straight apostrophes
and quotes) and are compiled case-insensitive.
"""

import re
from dataclasses import dataclass
from typing import Dict, Pattern, Tuple

from inbox_actions.email_processing.extraction.segmenter import ABBREVIATIONS
from inbox_actions.email_processing.models import ActionType

FLAGS = re.IGNORECASE | re.UNICODE

# Polite requests and reminders: "peux-tu", "merci de", "n'oublie pas de"...
REQUEST = (
    r"(?:\b(?:peux-tu|pourrais-tu|pouvez-vous|pourriez-vous|merci\s+de|veuillez)"
    r"|\bn'oublie(?:z)?\s+pas\s+de|\bpense(?:z)?\s+à)"
)

# Obligation forms with an optional intervening adverb:
# "il faut", "il faudrait", "il faudra", "il faudrait aussi"...
OBLIGATION = (
    r"\bil\s+(?:faut|faudrait|faudra)"
    r"(?:\s+(?:aussi|encore|également|egalement|bien|vraiment|absolument|rapidement))?"
)

# Bare imperatives only count at the start of a clause.
CLAUSE_START = r"(?:^|[,(]\s*|\b(?:et|puis|alors|donc|aussi|stp|svp)\s+)"

# Words that close a captured object before the end of the sentence.
BOUNDARY_WORDS = (
    r"avant|d'ici|pour|demain|aujourd'hui|asap|rapidement|au\s+plus\s+vite"
    r"|dès\s+que|ce\s+(?:matin|soir)|cet\s+après-midi|(?:en\s+)?fin\s+(?:de\s+(?:la\s+)?(?:journée|semaine)|d[eu]\s+mois)"
    r"|cette\s+semaine|la\s+semaine\s+prochaine|dans\s+\d+\s+(?:jours?|semaines?)"
)
FOLLOW_UP_BOUNDARY_WORDS = BOUNDARY_WORDS + r"|sur"


# A period right after an abbreviation ("M. Dupont") does not close the object.
NOT_AFTER_ABBREVIATION = "".join(r"(?<!\b%s)" % re.escape(token) for token in sorted(ABBREVIATIONS))


def _end(words: str = BOUNDARY_WORDS) -> str:
    return r"\s*(?:[!?](?=\s|$)|%s\.(?=\s|$)|$|\b(?:%s)\b)" % (NOT_AFTER_ABBREVIATION, words)


def _object(limit: int = 50, words: str = BOUNDARY_WORDS) -> str:
    # Lazy and capped; may not start with a boundary word.
    return r"(?P<object>(?!(?:%s)\b).{1,%d}?)" % (words, limit)


END = _end()
END_FOLLOW_UP = _end(FOLLOW_UP_BOUNDARY_WORDS)
OBJECT = _object()
OBJECT_SEND = _object(100)
OBJECT_FOLLOW_UP = _object(words=FOLLOW_UP_BOUNDARY_WORDS)

# Indirect object pronouns before an infinitive: "m'envoyer", "nous transmettre"
PRONOUN = r"(?:m'|nous\s+|lui\s+|leur\s+)?"


@dataclass(frozen=True)
class ActionRule:
    """One phrasing rule: the action it denotes and the pattern detecting it."""
    action_type: ActionType
    pattern: Pattern
    name: str

    def search(self, sentence: str):
        return self.pattern.search(sentence)


def _rule(action_type: ActionType, name: str, regex: str) -> ActionRule:
    return ActionRule(action_type=action_type, pattern=re.compile(regex, FLAGS), name=name)


ACTION_RULES: Tuple[ActionRule, ...] = (
    # SEND
    _rule(ActionType.SEND, "send_request",
          REQUEST + r"\s+" + PRONOUN + r"envoyer\s+" + OBJECT_SEND + END),
    _rule(ActionType.SEND, "send_imperative",
          CLAUSE_START + r"(?:envoie|envoyez)(?:-moi|-nous|-lui|-leur)?\s+" + OBJECT_SEND + END),
    _rule(ActionType.SEND, "send_obligation",
          OBLIGATION + r"\s+" + PRONOUN + r"envoyer\s+" + OBJECT_SEND + END),
    _rule(ActionType.SEND, "send_transmit",
          REQUEST + r"\s+" + PRONOUN + r"(?:transmettre|faire\s+parvenir|adresser)\s+" + OBJECT + END),
    _rule(ActionType.SEND, "send_forward",
          REQUEST + r"\s+" + PRONOUN + r"(?:transférer|faire\s+suivre)\s+"
          + r"(?P<object>.{1,50}?)\s*(?:[.!?]|$)"),

    # CALL
    _rule(ActionType.CALL, "call_back_request",
          REQUEST + r"\s+(?:me\s+|nous\s+)?rappeler(?:\s+" + OBJECT + r")?" + END),
    _rule(ActionType.CALL, "call_back_imperative",
          CLAUSE_START + r"(?:rappelle|rappelez)(?:-moi|-nous|-le|-la|-les)?(?:\s+" + OBJECT + r")?" + END),
    _rule(ActionType.CALL, "call_request",
          REQUEST + r"\s+(?:appeler|contacter|joindre|téléphoner\s+à)\s+" + OBJECT + END),
    _rule(ActionType.CALL, "call_imperative",
          CLAUSE_START + r"(?:appelle|appelez|contacte|contactez|téléphone\s+à|téléphonez\s+à)\s+" + OBJECT + END),
    _rule(ActionType.CALL, "call_obligation",
          OBLIGATION + r"\s+(?:appeler|rappeler|contacter|joindre)\s+" + OBJECT + END),
    _rule(ActionType.CALL, "call_meeting",
          REQUEST + r"\s+(?:organiser|planifier|caler)\s+(?:une?\s+)?(?:visio|réunion|call|appel)\s+(?:avec\s+)?"
          + OBJECT + END),

    # FOLLOW_UP
    _rule(ActionType.FOLLOW_UP, "follow_up_request",
          REQUEST + r"\s+relancer\s+" + OBJECT_FOLLOW_UP + END_FOLLOW_UP),
    _rule(ActionType.FOLLOW_UP, "follow_up_imperative",
          CLAUSE_START + r"(?:relance|relancez)\s+" + OBJECT_FOLLOW_UP + END_FOLLOW_UP),
    _rule(ActionType.FOLLOW_UP, "follow_up_tracking",
          REQUEST + r"\s+faire\s+(?:un\s+)?(?:suivi|point)\s+(?:sur|avec|de)\s+" + OBJECT + END),
    _rule(ActionType.FOLLOW_UP, "follow_up_obligation",
          OBLIGATION + r"\s+relancer\s+" + OBJECT_FOLLOW_UP + END_FOLLOW_UP),
    _rule(ActionType.FOLLOW_UP, "follow_up_reminder",
          REQUEST + r"\s+(?:me\s+)?(?:faire\s+un\s+)?rappel\s+(?:pour|sur|de)\s+" + OBJECT + END),

    # PAY
    _rule(ActionType.PAY, "pay_request",
          REQUEST + r"\s+(?:régler|regler|payer)\s+" + OBJECT + END),
    _rule(ActionType.PAY, "pay_imperative",
          CLAUSE_START + r"(?:règle|réglez|paie|paye|payez)\s+" + OBJECT + END),
    _rule(ActionType.PAY, "pay_proceed",
          REQUEST + r"\s+procéder\s+au\s+(?:paiement|règlement)(?:\s+" + OBJECT + r")?" + END),
    _rule(ActionType.PAY, "pay_obligation",
          OBLIGATION + r"\s+(?:régler|regler|payer)\s+" + OBJECT + END),
    _rule(ActionType.PAY, "pay_transfer",
          REQUEST + r"\s+faire\s+(?:un\s+)?virement\s+(?:de|pour|à)\s+" + OBJECT + END),

    # VALIDATE
    _rule(ActionType.VALIDATE, "validate_request",
          REQUEST + r"\s+valider\s+" + OBJECT + END),
    _rule(ActionType.VALIDATE, "validate_imperative",
          CLAUSE_START + r"(?:valide|validez)\s+" + OBJECT + END),
    _rule(ActionType.VALIDATE, "validate_obligation",
          OBLIGATION + r"\s+(?:valider|approuver|confirmer)\s+" + OBJECT + END),
    _rule(ActionType.VALIDATE, "approve_request",
          REQUEST + r"\s+(?:approuver|confirmer)\s+" + OBJECT + END),
    _rule(ActionType.VALIDATE, "approve_imperative",
          CLAUSE_START + r"(?:approuve|approuvez|confirme|confirmez)\s+" + OBJECT + END),
    _rule(ActionType.VALIDATE, "opinion_request",
          REQUEST + r"\s+(?:me\s+|nous\s+)?(?:donner\s+(?:ton|votre)\s+)?"
          r"(?:avis|ok|accord|validation|feu\s+vert)\s+(?:sur|pour)\s+" + OBJECT + END),
)


# Whole-email exclusions: automated senders, bulk subjects, unsubscribe footers.
SENDER_EXCLUSIONS: Tuple[Pattern, ...] = tuple(re.compile(p, FLAGS) for p in (
    r"no-?reply@",
    r"mailer-daemon@",
    r"bounces?@",
    r"automated@",
    r"do-?not-?reply@",
    r"notifications?@",
    r"newsletters?@",
))

SUBJECT_EXCLUSIONS: Tuple[Pattern, ...] = tuple(re.compile(p, FLAGS) for p in (
    r"newsletter",
    r"unsubscribe",
    r"désabonnement",
    r"notification",
    r"confirmation\s+(?:de\s+)?(?:commande|inscription|réservation)",
    r"votre\s+commande",
    r"facture\s+automatique",
    r"re(?:ç|c)u\s+(?:de\s+)?paiement",
))

BODY_EXCLUSIONS: Tuple[Pattern, ...] = tuple(re.compile(p, FLAGS) for p in (
    r"cliquez\s+ici\s+pour\s+vous\s+désabonner",
    r"si\s+vous\s+ne\s+souhaitez\s+plus\s+recevoir",
    r"pour\s+vous\s+désinscrire",
    r"cet\s+e-?mail\s+a\s+été\s+envoyé\s+automatiquement",
    r"ne\s+pas\s+répondre\s+à\s+cet\s+e-?mail",
))

# Hedged requests: dropped unless the sentence also carries a deadline.
WEAK_CONDITIONALS: Tuple[Pattern, ...] = tuple(re.compile(p, FLAGS) for p in (
    r"éventuellement",
    r"si\s+jamais",
    r"(?:quand|lorsque)\s+tu\s+(?:auras|as)\s+(?:le\s+)?temps",
    r"(?:quand|lorsque)\s+vous\s+(?:aurez|avez)\s+(?:le\s+)?temps",
))

# Concrete markers that make a match acceptable without a captured object.
STRONG_MARKERS: Dict[ActionType, Tuple[Pattern, ...]] = {
    ActionType.SEND: tuple(re.compile(p, FLAGS) for p in (
        r"devis", r"contrat", r"document", r"pi[eè]ce\s+jointe", r"fichier", r"\bpdf\b", r"rapport",
    )),
    ActionType.CALL: tuple(re.compile(p, FLAGS) for p in (
        r"\b0\d(?:[\s.]?\d{2}){4}\b", r"visi?o", r"\bmeet\b", r"\bteams\b", r"\bzoom\b", r"rappeler",
    )),
    ActionType.FOLLOW_UP: tuple(re.compile(p, FLAGS) for p in (
        r"client", r"devis", r"facture", r"dossier", r"commande", r"relancer", r"suivi",
    )),
    ActionType.PAY: tuple(re.compile(p, FLAGS) for p in (
        r"facture", r"\bfa[-\s]?\d+", r"r[eéè]glement", r"virement", r"\biban\b", r"\btva\b",
    )),
    ActionType.VALIDATE: tuple(re.compile(p, FLAGS) for p in (
        r"contrat", r"devis", r"version", r"document", r"maquette", r"proposition", r"bon\s+pour\s+accord",
    )),
}

TITLE_TEMPLATES: Dict[ActionType, Tuple[str, str]] = {
    # (with captured object, without)
    ActionType.SEND: ("Envoyer {}", "Envoyer un document"),
    ActionType.CALL: ("Appeler {}", "Appeler"),
    ActionType.FOLLOW_UP: ("Relancer {}", "Faire un suivi"),
    ActionType.PAY: ("Payer {}", "Effectuer un paiement"),
    ActionType.VALIDATE: ("Valider {}", "Valider"),
}
