"""
Ordonnancement des lots : prétraitement concurrent, appels au modèle
séquentiels et réconciliation des résultats avec les fichiers d'entrée.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from stockmeta.config import BatchingConfig, Settings
from stockmeta.core import pipeline
from stockmeta.core.errors import ReconciliationError, StockMetaError
from stockmeta.core.models import AnalysisOptions, AnalysisResult, FileKind, PreparedFile, SourceFile
from stockmeta.tasks.integrate import ModelClient
from stockmeta.tasks.normalize import classify
from stockmeta.tasks.utils import SleepFunc

logger = logging.getLogger(__name__)

MB = 1024 * 1024

Entry = Tuple[int, SourceFile]
ProgressFunc = Callable[[int, int], None]
Prepared = Union[PreparedFile, BaseException]


@dataclass
class BatchPlan:
    batch_size: int
    individual: bool
    batches: List[List[Entry]] = field(default_factory=list)


def plan_batches(files: Sequence[SourceFile], config: BatchingConfig) -> BatchPlan:
    """
    Taille des lots selon le volume total : au-delà des seuils « individuels »
    tous les fichiers sont traités un par un, dans un seul lot.
    """
    entries = list(enumerate(files))
    total_mb = sum(f.size for f in files) / MB

    if total_mb > config.individual_total_mb or len(files) > config.individual_file_count:
        logger.info(f"Gros volume ({len(files)} fichiers, {total_mb:.2f} Mo) : traitement individuel")
        return BatchPlan(batch_size=1, individual=True, batches=[entries] if entries else [])

    batch_size = config.default_batch_size
    if total_mb > config.large_upload_mb:
        batch_size = config.large_batch_size
    elif total_mb > config.medium_upload_mb:
        batch_size = config.medium_batch_size

    large_files = sum(1 for f in files if f.size > config.large_file_mb * MB)
    if large_files > config.large_file_count:
        batch_size = min(batch_size, config.large_file_batch_cap)

    batches = [entries[i:i + batch_size] for i in range(0, len(entries), batch_size)]
    return BatchPlan(batch_size=batch_size, individual=False, batches=batches)


# --- Réconciliation ---

Matcher = Callable[[int, Entry, List[AnalysisResult]], Optional[AnalysisResult]]


def _stem(filename: str) -> str:
    return filename.rsplit(".", 1)[0] if "." in filename else filename


def match_by_filename(position: int, entry: Entry, candidates: List[AnalysisResult]) -> Optional[AnalysisResult]:
    return next((r for r in candidates if r.filename == entry[1].filename), None)


def match_by_index(position: int, entry: Entry, candidates: List[AnalysisResult]) -> Optional[AnalysisResult]:
    return next((r for r in candidates if r.index is not None and r.index == entry[0]), None)


def match_by_stem(position: int, entry: Entry, candidates: List[AnalysisResult]) -> Optional[AnalysisResult]:
    stem = _stem(entry[1].filename)
    return next((r for r in candidates if _stem(r.filename or "") == stem), None)


def match_by_position(position: int, entry: Entry, candidates: List[AnalysisResult]) -> Optional[AnalysisResult]:
    return candidates[position] if position < len(candidates) else None


MATCHERS: List[Matcher] = [match_by_filename, match_by_index, match_by_stem, match_by_position]


def reconcile(entries: Sequence[Entry], results: Sequence[AnalysisResult]) -> List[AnalysisResult]:
    """
    Associe chaque fichier d'un lot à un résultat en essayant les MATCHERS dans
    l'ordre. Un résultat n'est attribué qu'une fois ; le positionnel porte sur
    la liste complète.
    """
    used: set = set()
    reconciled: List[AnalysisResult] = []
    for position, entry in enumerate(entries):
        index, source = entry
        match: Optional[AnalysisResult] = None
        for matcher in MATCHERS:
            if matcher is match_by_position:
                candidate = matcher(position, entry, list(results))
                if candidate is not None and id(candidate) in used:
                    candidate = None
            else:
                candidate = matcher(position, entry, [r for r in results if id(r) not in used])
            if candidate is not None:
                match = candidate
                break

        if match is None:
            error = ReconciliationError("No metadata generated for this file in the batch response")
            logger.error(f"Aucun résultat pour {source.filename} dans le lot")
            reconciled.append(AnalysisResult.failure(source.filename, str(error), classify(source), index))
            continue

        used.add(id(match))
        reconciled.append(match.model_copy(update={"filename": source.filename, "index": index}))
    return reconciled


# --- Ordonnanceur ---

class BatchScheduler:
    """
    Exécute une série de fichiers.

    Tous les fichiers sont normalisés avant le premier appel au modèle ; les
    appels sont ensuite strictement séquentiels avec des pauses progressives.
    Les ré-essais sur limite de débit restent l'affaire du ModelClient.
    """

    def __init__(
        self,
        client: ModelClient,
        settings: Settings,
        sleep: SleepFunc = asyncio.sleep,
        progress: Optional[ProgressFunc] = None,
    ):
        self._client = client
        self._settings = settings
        self._sleep = sleep
        self._progress = progress
        self._processed = 0
        self._total = 0

    @property
    def config(self) -> BatchingConfig:
        return self._settings.batching

    async def run(
        self, files: Sequence[SourceFile], api_key: str, options: AnalysisOptions
    ) -> List[AnalysisResult]:
        files = list(files)
        if not files:
            return []

        self._processed = 0
        self._total = len(files)
        prepared = await self._prepare_all(files)
        plan = plan_batches(files, self.config)
        logger.info(
            f"{len(files)} fichier(s), {len(plan.batches)} lot(s) de {plan.batch_size} au plus"
        )

        by_index: Dict[int, AnalysisResult] = {}
        for batch_index, batch in enumerate(plan.batches):
            if batch_index > 0:
                # Pause comptée à partir du lot qui vient de se terminer
                previous = batch_index - 1
                await self._sleep(self.config.batch_delay + self.config.batch_delay_step * previous)
            logger.info(f"Lot {batch_index + 1}/{len(plan.batches)} ({len(batch)} fichier(s))")

            batch_results: List[AnalysisResult] = []
            try:
                await self._process_batch(batch, prepared, api_key, options, batch_results)
            except Exception:
                done = len(batch_results)
                logger.exception(
                    "Échec du lot %d après %d fichier(s), traitement fichier par fichier du reste",
                    batch_index + 1,
                    done,
                )
                batch_results.extend(
                    await self._process_individually(
                        batch[done:], prepared, api_key, options, pause_first=done > 0
                    )
                )

            for result in reconcile(batch, batch_results):
                by_index[result.index] = result

        return [by_index[index] for index in range(len(files))]

    async def _prepare_all(self, files: List[SourceFile]) -> List[Prepared]:
        semaphore = asyncio.Semaphore(max(1, self.config.preprocess_concurrency))

        async def _prepare(source: SourceFile) -> PreparedFile:
            async with semaphore:
                return await pipeline.prepare_file(source, self._settings)

        return await asyncio.gather(*(_prepare(f) for f in files), return_exceptions=True)

    def _preparation_failure(self, index: int, source: SourceFile, error: BaseException) -> AnalysisResult:
        logger.error(f"Prétraitement impossible pour {source.filename} : {error}")
        message = str(error) or error.__class__.__name__
        return AnalysisResult.failure(source.filename, message, classify(source), index)

    def _advance(self) -> None:
        self._processed += 1
        if self._progress:
            self._progress(self._processed, self._total)

    async def _pause_between_files(self, position: int) -> None:
        if position > 0:
            await self._sleep(self.config.file_delay + self.config.file_delay_step * self._processed)

    async def _process_batch(
        self,
        batch: List[Entry],
        prepared: List[Prepared],
        api_key: str,
        options: AnalysisOptions,
        results: List[AnalysisResult],
    ) -> None:
        """
        Remplit `results` au fil du lot. Erreurs de fichier → résultat d'échec ;
        toute autre erreur fait échouer le lot, les résultats déjà obtenus restent
        dans `results`.
        """
        for position, (index, source) in enumerate(batch):
            await self._pause_between_files(position)
            item = prepared[index]
            if isinstance(item, BaseException):
                results.append(self._preparation_failure(index, source, item))
            else:
                try:
                    result = await pipeline.analyze_prepared(item, options, api_key, self._client)
                    results.append(result.model_copy(update={"index": index}))
                except StockMetaError as exc:
                    logger.error(f"Échec pour {source.filename} : {exc}")
                    results.append(AnalysisResult.failure(source.filename, str(exc), item.context.kind, index))
            self._advance()

    async def _process_individually(
        self,
        batch: List[Entry],
        prepared: List[Prepared],
        api_key: str,
        options: AnalysisOptions,
        pause_first: bool = False,
    ) -> List[AnalysisResult]:
        results: List[AnalysisResult] = []
        for position, (index, source) in enumerate(batch):
            if position > 0 or pause_first:
                is_video = classify(source) == FileKind.VIDEO
                await self._sleep(self.config.fallback_video_delay if is_video else self.config.fallback_delay)
            item = prepared[index]
            if isinstance(item, BaseException):
                results.append(self._preparation_failure(index, source, item))
            else:
                results.append(
                    await pipeline.run_pipeline(
                        source, options, api_key, self._client, self._settings, prepared=item, index=index
                    )
                )
            self._advance()
        return results
