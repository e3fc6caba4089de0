"""System prompt and message list assembly."""

from dataclasses import dataclass
from enum import Enum

from neowhat.core.config import settings
from neowhat.models import Tenant
from neowhat.services.rag import keywords
from neowhat.services.rag.retriever import RetrievalResult

NOT_FOUND_REPLY = (
    "Je ne trouve pas cette information dans nos documents. "
    "Pourriez-vous reformuler votre question ?"
)


class PromptBranch(str, Enum):
    FACTUAL_CONTEXT = "factual_context"
    CONTEXT = "context"
    NO_MATCH = "no_match"
    NO_KNOWLEDGE_BASE = "no_knowledge_base"


@dataclass
class AssembledPrompt:
    messages: list[dict[str, str]]
    branch: PromptBranch

    @property
    def system_content(self) -> str:
        return self.messages[0]["content"]


def _factual_instructions(question: str, context: str) -> str:
    lines = [
        "- **QUESTION FACTUELLE DÉTECTÉE** : Tu dois chercher MÉTICULEUSEMENT dans TOUT le contexte ci-dessous",
        "  * L'information peut être écrite de différentes façons (majuscules/minuscules, avec/sans guillemets, etc.)",
        '  * Exemple : "Formule Express", "formule Express", "Express", "formule express" = même chose',
        '  * Les prix peuvent être écrits : "14,50 €", "14.50€", "14,50 euros", "14.50 EUR"',
        "  * LIS TOUT LE CONTEXTE ligne par ligne avant de répondre",
        "  * Si tu vois l'information quelque part dans le contexte, tu DOIS la donner",
    ]
    if keywords.is_formula_question(question):
        context_lower = context.lower()
        has_express = "express" in context_lower
        has_formule_express = "formule" in context_lower and has_express
        lines += [
            "  * **ATTENTION SPÉCIALE FORMULES** :",
            f'  * Le contexte contient {"BIEN" if has_express else "PAS"} le mot "express"',
            f'  * Le contexte contient {"BIEN" if has_formule_express else "PAS"} "formule express"',
            '  * Cherche les mots "Formule", "formule", "Express", "express", "Complète", "complète"',
            '  * Les formules peuvent être dans une section "Formules du Midi" ou "Formules"',
            '  * Si tu vois "Formule Express" ou "formule Express" dans le contexte, c\'est la même chose',
        ]
        if has_express:
            lines.append(
                '  * ⚠️ IMPORTANT : Le mot "express" EST dans le contexte. '
                "Tu DOIS trouver et donner le prix de la formule Express si elle est mentionnée."
            )
    return "\n".join(lines)


def _factual_reminder(question: str, context: str) -> str:
    topic = " sur les formules" if keywords.is_formula_question(question) else ""
    reminder = (
        f"Pour cette question factuelle{topic}, "
        "examine CHAQUE ligne du contexte avec attention avant de répondre."
    )
    if "express" in context.lower():
        reminder += (
            ' Le mot "express" est présent dans le contexte - '
            "tu DOIS trouver et donner cette information."
        )
    return reminder


class PromptAssembler:
    """Builds the LLM message list for one question.

    The system message picks one of four instruction sets depending on
    whether context was found, whether the question is factual and whether
    the tenant has any documents at all.
    """

    def __init__(self, default_system_prompt: str | None = None) -> None:
        self.default_system_prompt = default_system_prompt or settings.default_system_prompt

    def select_branch(self, retrieval: RetrievalResult) -> PromptBranch:
        if retrieval.has_context:
            return PromptBranch.FACTUAL_CONTEXT if retrieval.is_factual else PromptBranch.CONTEXT
        if retrieval.document_count > 0:
            return PromptBranch.NO_MATCH
        return PromptBranch.NO_KNOWLEDGE_BASE

    def system_content(
        self,
        tenant: Tenant,
        retrieval: RetrievalResult,
        question: str,
    ) -> tuple[str, PromptBranch]:
        base = tenant.system_prompt or self.default_system_prompt
        branch = self.select_branch(retrieval)

        if branch == PromptBranch.NO_MATCH:
            return (
                f"{base}\n\n"
                "**ATTENTION :** Des documents sont disponibles dans la base de connaissances, "
                "mais aucune information pertinente n'a été trouvée pour cette question spécifique.\n\n"
                "Réponds poliment que tu n'as pas trouvé d'information pertinente dans les documents "
                "disponibles pour cette question. Propose à l'utilisateur de reformuler sa question "
                "ou d'être plus spécifique."
            ), branch

        if branch == PromptBranch.NO_KNOWLEDGE_BASE:
            return (
                f"{base}\n\n"
                "**ATTENTION :** Aucun document PDF n'a été uploadé et vectorisé pour ce client.\n\n"
                "Réponds poliment que tu n'as pas accès à une base de connaissances pour le moment. "
                "Indique que des documents doivent être uploadés pour pouvoir répondre aux questions."
            ), branch

        context = retrieval.context
        if branch == PromptBranch.FACTUAL_CONTEXT:
            guidance = _factual_instructions(question, context)
            reminder = _factual_reminder(question, context)
        else:
            guidance = (
                "- Combine intelligemment les différents segments de contexte "
                "pour donner une réponse complète"
            )
            reminder = "Combine intelligemment les segments pour une réponse complète."

        content = (
            f"{base}\n\n"
            "**INSTRUCTIONS CRITIQUES :**\n"
            "- Tu as accès au contenu d'un document PDF vectorisé ci-dessous\n"
            "- Utilise UNIQUEMENT les informations du contexte pour répondre\n"
            f"{guidance}\n"
            "- Si l'information demandée n'est PAS dans le contexte, dis poliment : "
            f'"{NOT_FOUND_REPLY}"\n'
            "- Ne jamais inventer d'informations qui ne sont pas dans le contexte\n\n"
            "**CONTEXTE DU DOCUMENT :**\n"
            f"{context}\n\n"
            f"**Rappel :** Base-toi exclusivement sur le contexte ci-dessus. {reminder}"
        )
        return content, branch

    def assemble(
        self,
        tenant: Tenant,
        retrieval: RetrievalResult,
        history: list[dict[str, str]],
        question: str,
    ) -> AssembledPrompt:
        content, branch = self.system_content(tenant, retrieval, question)
        messages = [{"role": "system", "content": content}]
        messages.extend(history)
        messages.append({"role": "user", "content": question})
        return AssembledPrompt(messages=messages, branch=branch)
