"""
Point d'entrée principal de l'application de génération de métadonnées.
Fournit une interface en ligne de commande (CLI) pour analyser des fichiers
d'images, SVG, EPS et vidéos et inspecter les fichiers EPS.
"""
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

# When executed directly (python stockmeta/main.py), ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import click
import httpx

from stockmeta.config import settings
from stockmeta.logging_config import setup_logging
from stockmeta.core import reporting
from stockmeta.core.errors import ExtractionError
from stockmeta.core.models import (
    AnalysisOptions,
    AnalysisResult,
    ContentModifiers,
    GenerationMode,
    Platform,
    SourceFile,
)
from stockmeta.core.scheduler import BatchScheduler
from stockmeta.tasks import eps
from stockmeta.tasks.integrate import ModelClient
from stockmeta.tasks.normalize import EPS_EXTENSIONS, RASTER_EXTENSIONS, SVG_EXTENSIONS, VIDEO_EXTENSIONS

logger = logging.getLogger(__name__)
run_defaults = settings.commands.run

SUPPORTED_EXTENSIONS = RASTER_EXTENSIONS | SVG_EXTENSIONS | EPS_EXTENSIONS | VIDEO_EXTENSIONS


def _iter_media_files(paths: Tuple[str, ...]) -> Iterator[Path]:
    """Itère les fichiers pris en charge dans l'ordre trié ; les fichiers explicites sont gardés tels quels."""
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_file():
            yield path
            continue
        for dirpath, dirnames, filenames in os.walk(path):
            dirnames.sort()
            for filename in sorted(filenames):
                if Path(filename).suffix.lower() in SUPPORTED_EXTENSIONS:
                    yield Path(dirpath) / filename


@click.group()
def cli():
    """Génération de métadonnées pour les banques d'images."""
    pass


@cli.command("run")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, resolve_path=True))
@click.option(
    "--platform",
    "platforms",
    multiple=True,
    type=click.Choice([p.value for p in Platform]),
    default=run_defaults.platforms,
    show_default=True,
    help="Plateforme(s) cible(s). Une seule plateforme active ses champs spécifiques.",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in GenerationMode]),
    default=run_defaults.mode,
    show_default=True,
    help="Métadonnées complètes ou simple description de type prompt.",
)
@click.option("--min-title-words", default=run_defaults.min_title_words, show_default=True)
@click.option("--max-title-words", default=run_defaults.max_title_words, show_default=True)
@click.option("--min-keywords", default=run_defaults.min_keywords, show_default=True)
@click.option("--max-keywords", default=run_defaults.max_keywords, show_default=True)
@click.option("--min-description-words", default=run_defaults.min_description_words, show_default=True)
@click.option("--max-description-words", default=run_defaults.max_description_words, show_default=True)
@click.option("--custom-prompt", default=None, help="Remplace le prompt intégré.")
@click.option("--prohibited-words", default=None, help="Mots interdits, séparés par des virgules.")
@click.option("--white-background", is_flag=True, help="Objet isolé sur fond blanc.")
@click.option("--transparent-background", is_flag=True, help="Objet isolé sur fond transparent.")
@click.option("--silhouette", is_flag=True, help="Image de type silhouette.")
@click.option("--single-word-keywords", is_flag=True, help="Découpe les mots-clés en mots simples.")
@click.option(
    "--api-key",
    envvar="GEMINI_API_KEY",
    default=settings.api_key,
    help="Clé d'API du modèle (ou variable GEMINI_API_KEY).",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, resolve_path=True),
    default=str(run_defaults.output) if run_defaults.output else None,
    help="Fichier JSON où écrire les résultats.",
)
@click.option(
    "-v",
    "--verbose/--no-verbose",
    default=run_defaults.verbose,
    show_default=True,
    help="Active l'affichage détaillé des logs en console.",
)
def run_command(
    paths: Tuple[str, ...],
    platforms: Tuple[str, ...],
    mode: str,
    min_title_words: int,
    max_title_words: int,
    min_keywords: int,
    max_keywords: int,
    min_description_words: int,
    max_description_words: int,
    custom_prompt: Optional[str],
    prohibited_words: Optional[str],
    white_background: bool,
    transparent_background: bool,
    silhouette: bool,
    single_word_keywords: bool,
    api_key: Optional[str],
    output: Optional[str],
    verbose: bool,
):
    """Analyse les fichiers et génère leurs métadonnées."""
    setup_logging(verbose, settings.app.log_dir)

    if not api_key:
        raise click.UsageError("Aucune clé d'API : utilisez --api-key ou GEMINI_API_KEY.")

    try:
        options = AnalysisOptions(
            platforms=[Platform(p) for p in platforms],
            generation_mode=GenerationMode(mode),
            min_title_words=min_title_words,
            max_title_words=max_title_words,
            min_keywords=min_keywords,
            max_keywords=max_keywords,
            min_description_words=min_description_words,
            max_description_words=max_description_words,
            custom_prompt_enabled=bool(custom_prompt),
            custom_prompt=custom_prompt or "",
            prohibited_words_enabled=bool(prohibited_words),
            prohibited_words=prohibited_words or "",
            modifiers=ContentModifiers(
                white_background=white_background,
                transparent_background=transparent_background,
                silhouette=silhouette,
            ),
            single_word_keywords_enabled=single_word_keywords,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    files = [SourceFile.from_path(path) for path in _iter_media_files(paths)]
    if not files:
        logger.info("Aucun fichier à traiter.")
        return

    logger.info(f"{len(files)} fichier(s) à traiter.")
    results = asyncio.run(main_process(files, api_key, options))

    for result in results:
        logger.info(reporting.format_file_line(result), extra={"plain": True})
    logger.info(reporting.format_summary(results), extra={"plain": True})

    if output:
        reporting.write_results(results, Path(output))
        logger.info(f"Résultats écrits dans {output}")


async def main_process(files: List[SourceFile], api_key: str, options: AnalysisOptions) -> List[AnalysisResult]:
    """Coroutine principale orchestrant le traitement."""

    def _progress(done: int, total: int):
        logger.debug(f"Progression : {done}/{total}")

    async with httpx.AsyncClient(timeout=settings.request_timeout) as http_client:
        client = ModelClient(http_client, settings)
        scheduler = BatchScheduler(client, settings, progress=_progress)
        return await scheduler.run(files, api_key, options)


@cli.command("inspect-eps")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
def inspect_eps(file: str):
    """Affiche le rapport texte extrait d'un fichier EPS."""
    setup_logging(verbose=False, log_dir=settings.app.log_dir)
    source = SourceFile.from_path(Path(file))
    try:
        metadata = eps.extract_eps_metadata(source)
    except ExtractionError as e:
        raise click.ClickException(str(e))
    click.echo(eps.serialize_eps_metadata(metadata, settings.normalize.eps_preview_chars))


if __name__ == "__main__":
    cli()
