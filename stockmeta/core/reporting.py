"""
Functions for reporting the results of a run.
"""
import json
from pathlib import Path
from typing import Dict, List, Sequence

from stockmeta.core.models import AnalysisResult
from stockmeta.tasks.categories import category_name


def _label(value: bool) -> str:
    return "oui" if value else "non"


def format_file_line(result: AnalysisResult) -> str:
    """Formats a single line of output for a processed file."""
    if not result.ok:
        return f"{result.filename} | traité=non | erreur={result.error}"

    parts = [
        result.filename,
        f"titre={_label(bool(result.title))}",
        f"description={_label(bool(result.description))}",
        f"mots-clés={len(result.keywords)}",
    ]
    if result.category is not None:
        parts.append(f"catégorie={result.category} ({category_name(result.category)})")
    if result.categories:
        parts.append(f"catégories={', '.join(result.categories)}")
    parts.append("traité=oui")
    return " | ".join(parts)


def summarize(results: Sequence[AnalysisResult]) -> Dict[str, int]:
    succeeded = sum(1 for r in results if r.ok)
    return {
        "total": len(results),
        "succeeded": succeeded,
        "failed": len(results) - succeeded,
        "videos": sum(1 for r in results if r.is_video),
        "eps": sum(1 for r in results if r.is_eps),
    }


def format_summary(results: Sequence[AnalysisResult]) -> str:
    counts = summarize(results)
    return (
        f"{counts['total']} fichier(s) | réussis={counts['succeeded']} | échecs={counts['failed']} | "
        f"vidéos={counts['videos']} | eps={counts['eps']}"
    )


def results_to_json(results: Sequence[AnalysisResult]) -> List[dict]:
    return [result.model_dump(mode="json", exclude_none=True) for result in results]


def write_results(results: Sequence[AnalysisResult], output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(results_to_json(results), f, ensure_ascii=False, indent=2)
