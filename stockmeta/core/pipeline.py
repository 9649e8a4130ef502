"""
Pipeline d'un fichier : normalisation, prompt, appel du modèle, analyse de la
réponse puis post-traitement.
"""
import datetime
import logging
from typing import Optional

from stockmeta.config import Settings
from stockmeta.core.models import AnalysisOptions, AnalysisResult, FileKind, PreparedFile, SourceFile
from stockmeta.tasks import normalize, parsing, postprocess, prompts
from stockmeta.tasks.integrate import ModelClient

logger = logging.getLogger(__name__)


class PipelineState:
    """Contient l'état et les données collectées pour un fichier."""

    def __init__(self, source: SourceFile, index: Optional[int] = None):
        self.source = source
        self.index = index
        self.kind: Optional[FileKind] = None
        self.prompt: Optional[str] = None
        self.raw_response: Optional[str] = None
        self.result: Optional[AnalysisResult] = None
        self.error_message: Optional[str] = None
        self.processing_time_ms: int = 0


async def prepare_file(source: SourceFile, settings: Settings) -> PreparedFile:
    """Normalise un fichier pour l'envoi au modèle (sans appel réseau)."""
    prepared = await normalize.normalize(source, settings)
    logger.debug(
        f"{source.filename} normalisé en {prepared.context.kind.value} "
        f"({prepared.payload.mime_type}, {prepared.payload.filename})"
    )
    return prepared


async def analyze_prepared(
    prepared: PreparedFile,
    options: AnalysisOptions,
    api_key: str,
    client: ModelClient,
    state: Optional[PipelineState] = None,
) -> AnalysisResult:
    """Interroge le modèle pour un fichier déjà normalisé."""
    context = prepared.context
    schema = prompts.ResponseSchema.resolve(options.generation_mode, options.platform_group, context.kind)
    prompt = prompts.compose_prompt(context, options)
    raw = await client.invoke(prompt, prepared.payload, api_key)
    if state is not None:
        state.prompt = prompt
        state.raw_response = raw

    parsed = parsing.parse_response(raw, schema)
    return postprocess.apply_post_processing(parsed, options, context)


async def run_pipeline(
    source: SourceFile,
    options: AnalysisOptions,
    api_key: str,
    client: ModelClient,
    settings: Settings,
    prepared: Optional[PreparedFile] = None,
    index: Optional[int] = None,
) -> AnalysisResult:
    """
    Exécute le pipeline pour un fichier.

    Ne lève jamais : toute erreur est convertie en résultat d'échec portant le
    nom du fichier et son type.
    """
    start_time = datetime.datetime.now(datetime.timezone.utc)
    state = PipelineState(source, index)
    state.kind = prepared.context.kind if prepared else normalize.classify(source)

    try:
        if prepared is None:
            prepared = await prepare_file(source, settings)
        result = await analyze_prepared(prepared, options, api_key, client, state)
        state.result = result.model_copy(update={"index": index})

    except Exception as exc:
        logger.exception("Erreur dans le pipeline pour %s", source.filename)
        state.error_message = str(exc) or exc.__class__.__name__
        state.result = AnalysisResult.failure(source.filename, state.error_message, state.kind, index)

    finally:
        end_time = datetime.datetime.now(datetime.timezone.utc)
        state.processing_time_ms = int((end_time - start_time).total_seconds() * 1000)
        logger.debug(f"{source.filename} traité en {state.processing_time_ms} ms")

    return state.result
