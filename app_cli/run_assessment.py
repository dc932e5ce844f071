from __future__ import annotations
import json, logging, os, datetime
from solace_core.catalog import load_catalog
from solace_core.flow import FlowController
from solace_core.bands import category_label, category_description
from solace_core.reporting import to_basic


def ask(flow: FlowController, q) -> str:
    print(f"\n[{flow.progress():.0%}] {q.prompt}")
    labels = q.config.get("labels") or {}
    if q.type in ("single-select", "multi-select"):
        for i, opt in enumerate(q.options):
            print(f"  [{i}] {labels.get(opt, opt)}")
        hint = "index" if q.type == "single-select" else "indexes, comma separated"
        return input(f"Your choice ({hint}, 'b' back, 'q' quit): ").strip()
    if q.type == "scale":
        for k in sorted(labels):
            print(f"  {k} = {labels[k]}")
    shown = flow.value_of(q.id)
    suffix = f" [{shown}]" if shown not in (None, "", []) else ""
    if q.type == "tag-list":
        print("  suggestions: " + ", ".join(q.config.get("suggestions") or []))
        return input(f"Tags, comma separated{suffix}: ").strip()
    return input(f"Your answer{suffix}: ").strip()


def parse(q, raw: str):
    if q.type == "single-select":
        return q.options[int(raw)] if raw.isdigit() and int(raw) < len(q.options) else raw
    if q.type == "multi-select":
        picks = [p.strip() for p in raw.split(",") if p.strip()]
        return [q.options[int(p)] if p.isdigit() and int(p) < len(q.options) else p for p in picks]
    if q.type == "tag-list":
        return [p for p in raw.split(",")]
    return raw


def main():
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"), format="[%(levelname)s] %(message)s")
    print("Solace Assessment")
    flow = FlowController(load_catalog(os.getenv("CATALOG_PATH") or None))
    result = None
    while result is None:
        q = flow.current_question()
        raw = ask(flow, q) if q is not None else ""
        if raw.lower() == "q":
            flow.abandon(); print("Assessment abandoned."); return
        if raw.lower() == "b":
            flow.retreat(); continue
        if q is not None and raw:
            flow.answer(q.id, parse(q, raw))
        result = flow.advance()
    print(f"\nSolace score: {result.value} ({category_label(result.category)})")
    print(category_description(result.category))
    for item in result.breakdown:
        print(f"  {item.dimension_label:<18} {item.score:3d}  {item.severity}")
    for rec in result.recommendations:
        print(f"  - {rec}")
    os.makedirs("results", exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join("results", f"result_{ts}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"score": to_basic(result), "answers": to_basic(flow.answer_set())}, f, indent=2)
    print(f"Done. Result saved to: {path}")


if __name__ == "__main__": main()
