from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from . import config
from .catalog import QuestionCatalog, load_records
from .types import QUESTION_TYPES

_SELECT_TYPES = ("single-select", "multi-select")
_CONDITION_OPS = ("equals", "in", "includes")


def _check_record(r: Mapping[str, Any], known: Dict[str, Mapping[str, Any]]) -> List[str]:
    qid = str(r.get("id") or "?")
    qtype = r.get("type")
    cfg = r.get("config") or {}
    warnings: List[str] = []

    if qtype not in QUESTION_TYPES:
        warnings.append(f"{qid} has unknown type {qtype!r}")
    if not str(r.get("prompt") or "").strip():
        warnings.append(f"{qid} has an empty prompt")

    if qtype in _SELECT_TYPES:
        opts = list(cfg.get("options") or [])
        if len(opts) < 2:
            warnings.append(f"{qid} offers {len(opts)} option(s) (<2)")
        if len(set(opts)) != len(opts):
            warnings.append(f"{qid} has duplicate option ids")
        labels = cfg.get("labels") or {}
        unlabeled = [o for o in opts if o not in labels]
        if labels and unlabeled:
            warnings.append(f"{qid} options without label: {', '.join(unlabeled)}")
    elif qtype == "numeric-range":
        lo, hi, dflt = cfg.get("min"), cfg.get("max"), cfg.get("default")
        if lo is None or hi is None:
            warnings.append(f"{qid} is missing min/max")
        elif lo > hi:
            warnings.append(f"{qid} has min {lo} > max {hi}")
        elif dflt is not None and not (lo <= dflt <= hi):
            warnings.append(f"{qid} default {dflt} outside [{lo}, {hi}]")
        if qid == "age" and (lo, hi, dflt) != (config.MIN_AGE, config.MAX_AGE, config.DEFAULT_AGE):
            warnings.append(
                f"age bounds {lo}..{hi} (default {dflt}) differ from "
                f"{config.MIN_AGE}..{config.MAX_AGE} (default {config.DEFAULT_AGE})"
            )
    elif qtype == "scale":
        dflt = cfg.get("default", config.SCALE_DEFAULT)
        if not (config.SCALE_MIN <= dflt <= config.SCALE_MAX):
            warnings.append(f"{qid} default {dflt} outside [{config.SCALE_MIN}, {config.SCALE_MAX}]")
    elif qtype == "tag-list":
        if int(cfg.get("max_tags", config.MAX_TAGS)) < 1:
            warnings.append(f"{qid} allows no tags")
    elif qtype == "free-text":
        if int(cfg.get("max_length", config.FREE_TEXT_MAX_LENGTH)) < 1:
            warnings.append(f"{qid} allows no text")

    cond = r.get("depends_on")
    if cond:
        ref = cond.get("question")
        ops = [op for op in _CONDITION_OPS if op in cond]
        if ref not in known:
            warnings.append(f"{qid} depends on {ref!r}, which is not an earlier question")
        if len(ops) != 1:
            warnings.append(f"{qid} condition needs exactly one of {', '.join(_CONDITION_OPS)}")
        elif ref in known:
            target = known[ref]
            target_opts = list((target.get("config") or {}).get("options") or [])
            wanted = cond[ops[0]]
            values = wanted if ops[0] == "in" else [wanted]
            if target_opts and any(v not in target_opts for v in values):
                warnings.append(f"{qid} condition references an option {ref} does not offer")
    return warnings


def audit_records(records: Iterable[Mapping[str, Any]]) -> dict[str, object]:
    known: Dict[str, Mapping[str, Any]] = {}
    totals: Dict[str, int] = {t: 0 for t in QUESTION_TYPES}
    warnings: List[str] = []
    conditional = 0
    for r in records:
        qid = str(r.get("id") or "?")
        if qid in known:
            warnings.append(f"duplicate question id {qid}")
        warnings.extend(_check_record(r, known))
        if r.get("type") in totals:
            totals[r["type"]] += 1
        if r.get("depends_on"):
            conditional += 1
        known[qid] = r
    return {
        "questions": len(known),
        "conditional": conditional,
        "totals": totals,
        "warnings": warnings,
    }


def print_report(summary: dict[str, object]) -> None:
    print("=== Catalog Audit ===")
    print(f"questions: {summary['questions']}  conditional: {summary['conditional']}")
    totals: Dict[str, int] = summary["totals"]  # type: ignore[assignment]
    for t in QUESTION_TYPES:
        print(f"  {t:<14} {totals.get(t, 0):3d}")
    warnings: List[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    paths = [a for a in args if not a.startswith("--")]
    path = Path(paths[0]) if paths else None
    records = load_records(path)
    summary = audit_records(records)
    print_report(summary)
    if not summary["warnings"]:
        # make sure the catalog actually compiles as well
        QuestionCatalog.from_records(records)
    if "--json" in args:
        print(json.dumps(summary, indent=2, sort_keys=True))
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
