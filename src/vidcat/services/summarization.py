"""AI summary generation built on top of Pydantic AI."""

from __future__ import annotations

import asyncio
import time
from typing import Optional, Sequence

from pydantic import SecretStr
from rich.console import Console

from vidcat.config.settings import AIProvider, Settings, get_settings
from vidcat.models.theme import Theme

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.providers.google import GoogleProvider

try:  # pragma: no cover - optional groq provider
    from pydantic_ai.models.groq import GroqModel
    from pydantic_ai.providers.groq import GroqProvider
except ImportError:  # pragma: no cover - optional groq provider
    GroqModel = None  # type: ignore[assignment]

MAX_DESCRIPTION_CHARS = 5_000


class SummarizationService:
    """Ask a language model for a French summary, bilingual keywords, and a theme.

    The model answers with the labeled-section text understood by
    :func:`vidcat.services.metadata.parse_ai_response`. Missing credentials, timeouts, and provider
    errors all yield ``None``; callers treat that as "AI unavailable".
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        model: Optional[Model] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._model = model if model is not None else self._create_model()
        self._agent: Optional[Agent[None, str]] = (
            Agent(model=self._model, output_type=str, system_prompt=self._system_prompt())
            if self._model is not None
            else None
        )

    @property
    def is_configured(self) -> bool:
        return self._agent is not None and self._settings.enable_summarization

    @property
    def model_name(self) -> Optional[str]:
        return self._model.model_name if self._model is not None else None

    async def generate(
        self,
        title: str,
        description: str,
        channel_title: str,
        themes: Sequence[Theme] = (),
    ) -> Optional[str]:
        """Return the raw model answer for a video, or ``None`` when AI output is unavailable.

        Parameters
        ----------
        title, description, channel_title:
            Video metadata used as the only context for the model.
        themes:
            Existing catalog themes the model should prefer over inventing a new one.

        Returns
        -------
        str | None
            Free text in the ``Résumé`` / ``Mots-clés`` / ``Thématique`` convention.
        """

        if self._agent is None or not self._settings.enable_summarization:
            return None

        prompt = self.build_prompt(title, description, channel_title, themes)
        timeout = float(self._settings.provider_timeout_seconds)
        start_time = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._agent.run(prompt), timeout=timeout)
        except asyncio.TimeoutError:
            self._console.log(f"[yellow]Summary generation timed out after {timeout:.0f}s.[/yellow]")
            return None
        except Exception as exc:
            self._console.log(f"[yellow]Summary generation failed: {exc}[/yellow]")
            return None

        duration_seconds = time.perf_counter() - start_time
        self._console.log(f"Summary generated by {self.model_name} (duration={duration_seconds:.2f}s)")
        return result.output

    def build_prompt(
        self,
        title: str,
        description: str,
        channel_title: str,
        themes: Sequence[Theme] = (),
    ) -> str:
        """Compose the user prompt for one video."""

        trimmed_description = (description or "").strip()[:MAX_DESCRIPTION_CHARS] or "Non disponible"
        theme_names = ", ".join(theme.name for theme in themes) or "aucune"

        return (
            "Analyse les informations suivantes sur une vidéo YouTube :\n"
            f"Titre: {title or 'Non spécifié'}\n"
            f"Chaîne: {channel_title or 'Non spécifié'}\n"
            f"Description: {trimmed_description}\n\n"
            "Tâche :\n"
            "1. Rédige un résumé concis et informatif (3-5 phrases) en FRANÇAIS, ton professionnel académique.\n"
            "2. Donne 5 à 8 mots-clés pertinents, mélange de FRANÇAIS et d'ANGLAIS, séparés par des virgules.\n"
            "3. Choisis une thématique. Réutilise si possible une thématique existante "
            f"({theme_names}); sinon propose un nom court.\n\n"
            "Réponds exactement avec ces trois lignes, sans markdown :\n"
            "Résumé: <résumé>\n"
            "Mots-clés: <mot-clé 1>, <mot-clé 2>, ...\n"
            "Thématique: <thématique>"
        )

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _create_model(self) -> Optional[Model]:
        """Instantiate the configured model, or ``None`` when no credentials are usable."""

        gemini_key = _secret_value(self._settings.gemini_api_key)
        groq_key = _secret_value(self._settings.groq_api_key)
        choice = self._settings.ai_provider

        if choice in (AIProvider.GEMINI, AIProvider.AUTO) and gemini_key:
            return GoogleModel(self._settings.gemini_model, provider=GoogleProvider(api_key=gemini_key))
        if choice in (AIProvider.GROQ, AIProvider.AUTO) and groq_key:
            if GroqModel is None:
                self._console.log("[yellow]Groq support is unavailable; install pydantic-ai-slim[groq].[/yellow]")
                return None
            return GroqModel(self._settings.groq_model, provider=GroqProvider(api_key=groq_key))
        return None

    def _system_prompt(self) -> str:
        return (
            "Tu es un assistant expert en sciences cognitives qui catalogue des vidéos YouTube. "
            "Tu restes factuel et n'inventes rien qui ne figure pas dans les informations fournies."
        )


def _secret_value(secret: Optional[SecretStr]) -> Optional[str]:
    if secret is None:
        return None
    value = secret.get_secret_value().strip()
    return value or None


__all__ = ["SummarizationService"]
