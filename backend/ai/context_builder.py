import json
from collections.abc import Iterable
from dataclasses import dataclass, field

from schemas.chat import ChatMessage
from schemas.reports import AnalysisResult
from schemas.user import UserProfile

INTRO_SUMMARY_CHARS = 100
_DEFAULT_CONTEXT_MAX_CHARS = 12000

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "hi": "Hindi",
    "pt": "Portuguese",
}

# Fixed assistant texts that never go through the completion service.
_FALLBACK_TEXT = {
    "en": "Sorry, I encountered a connection error. Please try again.",
    "es": "Lo siento, se produjo un error de conexión. Por favor, inténtalo de nuevo.",
    "fr": "Désolé, une erreur de connexion s'est produite. Veuillez réessayer.",
    "de": "Entschuldigung, es ist ein Verbindungsfehler aufgetreten. Bitte versuche es erneut.",
    "hi": "क्षमा करें, कनेक्शन में त्रुटि हुई। कृपया पुनः प्रयास करें।",
    "pt": "Desculpe, ocorreu um erro de conexão. Por favor, tente novamente.",
}

_INTRO_TEMPLATE = {
    "en": "I've finished analyzing your report: \"{summary}\". Feel free to ask me any questions about the findings!",
    "es": "He terminado de analizar tu informe: \"{summary}\". ¡Pregúntame lo que quieras sobre los resultados!",
    "fr": "J'ai terminé l'analyse de votre rapport : \"{summary}\". N'hésitez pas à me poser vos questions sur les résultats !",
    "de": "Ich habe deinen Bericht analysiert: \"{summary}\". Stell mir gerne Fragen zu den Ergebnissen!",
    "hi": "मैंने आपकी रिपोर्ट का विश्लेषण पूरा कर लिया है: \"{summary}\"। निष्कर्षों के बारे में कोई भी प्रश्न पूछें!",
    "pt": "Terminei de analisar o seu relatório: \"{summary}\". Fique à vontade para perguntar sobre os resultados!",
}

PERSONA_PROMPT = """You are Vitalis, a helpful, empathetic, and professional medical AI assistant.
Your goal is to answer the user's questions about health, wellness, medicine, or their medical reports.

Important Rules:
1. KEEP RESPONSES VERY SHORT AND CONCISE. Aim for 2-3 sentences maximum.
2. Be direct and instant. Do not waffle.
3. Avoid medical jargon where possible, or explain it simply.
4. ALWAYS remind the user that you are an AI and they should consult a doctor for definitive medical advice."""

TOPIC_SCOPE_PROMPT = """Topic scope:
- Only discuss health, wellness, medicine, nutrition, fitness, sleep, mental wellbeing, and the user's own health records.
- If a request falls outside these topics, politely refuse in one sentence and invite a health-related question instead."""


def normalize_language(code: str | None, default: str = "en") -> str:
    raw = (code or "").strip().lower().replace("_", "-")
    if not raw:
        return default
    return raw.split("-")[0] or default


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(normalize_language(code), code)


def fallback_message(language: str) -> str:
    return _FALLBACK_TEXT.get(normalize_language(language), _FALLBACK_TEXT["en"])


def analysis_intro_message(summary: str, language: str) -> str:
    template = _INTRO_TEMPLATE.get(normalize_language(language), _INTRO_TEMPLATE["en"])
    return template.format(summary=(summary or "")[:INTRO_SUMMARY_CHARS])


def _clip_block(text: str, max_chars: int) -> str:
    raw = (text or "").strip()
    if len(raw) <= max_chars:
        return raw
    keep = max(80, max_chars - 24)
    return f"{raw[:keep].rstrip()}\n...[truncated]"


def format_language_directive(language: str) -> str:
    name = language_name(language)
    return (
        f"Language: the user's display language is {name}. "
        f"Write every reply in {name}, including refusals of off-topic requests."
    )


def format_user_profile(profile: UserProfile | None) -> str:
    """Format the signed-in user's profile into a personalization section."""
    if not profile:
        return ""

    lines = [f"- Name: {profile.name}"]
    if profile.sex:
        lines.append(f"- Sex: {profile.sex.value}")
    if profile.health_history:
        lines.append(f"- Health history: {', '.join(profile.health_history)}")
    else:
        lines.append("- Health history: none reported")
    return "USER PROFILE (use it to personalize answers, address the user by name):\n" + "\n".join(lines)


def format_analysis_context(analysis: AnalysisResult | None) -> str:
    if not analysis:
        return ""
    findings = [f.model_dump(mode="json", exclude_none=True) for f in analysis.findings]
    return (
        "CONTEXT: The user has uploaded a medical report or image. Here is the analysis of that input:\n"
        f"Summary: {analysis.summary}\n"
        f"Findings: {json.dumps(findings, ensure_ascii=False)}\n"
        f"Research: {analysis.research_context}\n\n"
        "Use this context to answer specific questions about their results. If they ask about a "
        "specific value (e.g. \"Is my Iron low?\"), refer to the findings provided above."
    )


def build_system_preamble(
    language: str,
    profile: UserProfile | None = None,
    analysis: AnalysisResult | None = None,
) -> str:
    """Assemble the system instruction: persona, scope policy, language, then optional context."""
    sections = [
        PERSONA_PROMPT,
        TOPIC_SCOPE_PROMPT,
        format_language_directive(language),
    ]
    profile_block = format_user_profile(profile)
    if profile_block:
        sections.append(profile_block)
    analysis_block = format_analysis_context(analysis)
    if analysis_block:
        sections.append(_clip_block(analysis_block, _DEFAULT_CONTEXT_MAX_CHARS))
    return "\n\n".join(sections)


@dataclass(frozen=True)
class CompletionRequest:
    system: str
    messages: list[dict] = field(default_factory=list)


def build_completion_request(
    preamble: str,
    history: Iterable[ChatMessage],
    new_turn: str,
) -> CompletionRequest:
    """A fresh completion session: full prior history plus the new user turn."""
    messages = [{"role": msg.role.value, "content": msg.text} for msg in history]
    messages.append({"role": "user", "content": new_turn})
    return CompletionRequest(system=preamble, messages=messages)
