"""End-to-end registration of a submitted URL: resolve, enrich, normalize, store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, TypedDict

from langgraph.graph import END, START, StateGraph
from rich.console import Console

from vidcat.config.settings import Settings, get_settings
from vidcat.db.store import DuplicateReferenceError
from vidcat.models.metadata import NormalizedMetadata, ProviderMetadata
from vidcat.models.theme import Theme
from vidcat.models.video import VideoRecord, VideoReference
from vidcat.services.catalog import CatalogService
from vidcat.services.metadata import normalize
from vidcat.services.summarization import SummarizationService
from vidcat.services.youtube import YouTubeMetadataClient
from vidcat.utils.progress import ProcessingStage, ProgressCallback, ProgressUpdate
from vidcat.utils.validation import require_reference


class IngestionState(TypedDict, total=False):
    """Workflow state propagated through the LangGraph pipeline."""

    reference: VideoReference
    enrich: bool
    themes: List[Theme]
    metadata: Optional[ProviderMetadata]
    ai_response: Optional[str]
    normalized: Optional[NormalizedMetadata]


@dataclass(slots=True)
class IngestionResult:
    """Stored record together with the normalization output that produced it."""

    record: VideoRecord
    normalized: NormalizedMetadata

    @property
    def metadata_simulated(self) -> bool:
        return self.normalized.metadata_simulated

    @property
    def ai_simulated(self) -> bool:
        return self.normalized.simulated


class IngestionService:
    """Coordinate URL resolution, provider enrichment, and catalog registration."""

    def __init__(
        self,
        catalog: CatalogService,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        youtube: Optional[YouTubeMetadataClient] = None,
        summarizer: Optional[SummarizationService] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._catalog = catalog
        self._youtube = youtube or YouTubeMetadataClient(settings=self._settings, console=self._console)
        self._summarizer = summarizer or SummarizationService(settings=self._settings, console=self._console)
        self._progress_callback: ProgressCallback = None
        self._video_url = ""
        self._workflow = self._build_workflow()

    async def ingest(
        self,
        url: str,
        *,
        admin_annotation: str = "",
        enrich: bool = True,
        on_progress: ProgressCallback = None,
    ) -> IngestionResult:
        """Register the video behind ``url``.

        Parameters
        ----------
        url:
            User-submitted video URL.
        admin_annotation:
            Optional administrator note stored with the record.
        enrich:
            When ``False`` provider calls are skipped and the record carries default metadata.
        on_progress:
            Optional callback invoked with progress updates.

        Returns
        -------
        IngestionResult
            The stored record and the normalized metadata behind it.

        Raises
        ------
        UrlResolutionError
            If ``url`` is not a supported video link.
        DuplicateReferenceError
            If the video is already catalogued; no provider is contacted in that case.
        """

        self._progress_callback = on_progress
        self._video_url = url
        try:
            self._emit_progress(ProcessingStage.RESOLVING, "Resolving video URL")
            reference = require_reference(url)
            if self._catalog.exists(reference):
                raise DuplicateReferenceError(reference)

            state: IngestionState = {
                "reference": reference,
                "enrich": enrich,
                "themes": self._catalog.list_themes(),
                "metadata": None,
                "ai_response": None,
                "normalized": None,
            }
            final_state = await self._workflow.ainvoke(state)
            normalized = final_state.get("normalized") or NormalizedMetadata()
            for issue in normalized.issues:
                self._console.log(f"[yellow]{reference.external_id}: {issue}[/yellow]")

            self._emit_progress(ProcessingStage.STORING, "Storing catalog record")
            record = self._catalog.register(reference, normalized, admin_annotation=admin_annotation)
            self._emit_progress(ProcessingStage.COMPLETE, f"Registered {record.title}")
            return IngestionResult(record=record, normalized=normalized)
        except Exception as exc:
            self._emit_progress(ProcessingStage.FAILED, str(exc))
            raise
        finally:
            self._progress_callback = None
            self._video_url = ""

    # ------------------------------------------------------------------ #
    # Workflow                                                           #
    # ------------------------------------------------------------------ #
    def _build_workflow(self) -> object:
        """Construct the LangGraph workflow: fetch, optionally summarize, then normalize."""

        graph = StateGraph(IngestionState)
        graph.add_node("fetch_metadata", self._fetch_metadata_node)
        graph.add_node("summarize", self._summarize_node)
        graph.add_node("normalize", self._normalize_node)
        graph.add_edge(START, "fetch_metadata")
        graph.add_conditional_edges(
            "fetch_metadata",
            self._route_post_fetch,
            {
                "summarize": "summarize",
                "normalize": "normalize",
            },
        )
        graph.add_edge("summarize", "normalize")
        graph.add_edge("normalize", END)
        return graph.compile()

    async def _fetch_metadata_node(self, state: IngestionState) -> IngestionState:
        if not state.get("enrich", True):
            return {"metadata": None}
        self._emit_progress(ProcessingStage.FETCHING_METADATA, "Fetching video metadata")
        metadata = await self._youtube.fetch(state["reference"].external_id)
        if metadata is None:
            self._emit_progress(ProcessingStage.FETCHING_METADATA, "Metadata unavailable, using defaults", done=True)
        return {"metadata": metadata}

    def _route_post_fetch(self, state: IngestionState) -> str:
        metadata = state.get("metadata")
        if not state.get("enrich", True) or not self._summarizer.is_configured:
            return "normalize"
        if metadata is None or not (metadata.title or metadata.description):
            return "normalize"
        return "summarize"

    async def _summarize_node(self, state: IngestionState) -> IngestionState:
        metadata = state["metadata"]
        self._emit_progress(ProcessingStage.SUMMARIZING, "Generating AI summary")
        response = await self._summarizer.generate(
            metadata.title or "",
            metadata.description or "",
            metadata.channel_title or "",
            state.get("themes", []),
        )
        return {"ai_response": response}

    async def _normalize_node(self, state: IngestionState) -> IngestionState:
        self._emit_progress(ProcessingStage.NORMALIZING, "Normalizing metadata")
        normalized = normalize(
            state.get("metadata"),
            state.get("ai_response"),
            state.get("themes", []),
            external_id=state["reference"].external_id,
        )
        return {"normalized": normalized}

    def _emit_progress(self, stage: ProcessingStage, message: str, *, done: bool = False) -> None:
        if self._progress_callback is None:
            return
        self._progress_callback(ProgressUpdate.for_stage(stage, message, self._video_url, done=done))


__all__ = ["IngestionResult", "IngestionService", "IngestionState"]
