import argparse
import asyncio
import json
import uuid
from pathlib import Path
from typing import Any

from audit_engine.core.config import Settings, settings
from audit_engine.core.errors import AuditEngineError
from audit_engine.core.logging_config import configure_logging
from audit_engine.core.sentry import init_sentry
from audit_engine.db import session as db_session
from audit_engine.services import fix_entities, fix_entity_scheduler
from audit_engine.services.content_fragment_links import analyze_broken_paths
from audit_engine.services.language_tree import default_tree
from audit_engine.services.mystique_aggregation import AggregationGranularity, process_suggestions_for_mystique
from audit_engine.services.s3_keys import reconstruct_url_from_s3_key


def _read_json(raw_path: str) -> Any:
    path = Path((raw_path or "").strip())
    if not str(path) or str(path) == ".":
        raise SystemExit("Input path is required")
    if not path.is_file():
        raise SystemExit(f"Input file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Input file is not valid JSON: {path} ({exc.msg})") from exc


def _emit(payload: Any, output: str | None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    if not output:
        print(text)
        return
    target = Path(output)
    if target.is_dir():
        raise SystemExit(f"Output path points to a directory: {target}")
    target.write_text(text + "\n", encoding="utf-8")
    print(f"Wrote {target}")


def _parse_overrides(values: list[str] | None) -> dict[str, AggregationGranularity]:
    overrides: dict[str, AggregationGranularity] = {}
    for value in values or []:
        issue_type, sep, granularity = value.partition("=")
        if not sep or not issue_type.strip():
            raise SystemExit(f"Invalid granularity override (expected TYPE=GRANULARITY): {value}")
        try:
            overrides[issue_type.strip()] = AggregationGranularity(granularity.strip().upper())
        except ValueError as exc:
            raise SystemExit(f"Unknown granularity: {granularity}") from exc
    return overrides


def _parse_uuid(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid opportunity id: {raw}") from exc


def _load_broken_paths(input_path: str) -> list[Any]:
    broken_paths = _read_json(input_path)
    if not isinstance(broken_paths, list):
        raise SystemExit("Input must be a JSON list of broken paths")
    return broken_paths


def _analysis_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {}
    if getattr(args, "author_url", None):
        overrides["aem_author_url"] = args.author_url
    if getattr(args, "token", None):
        overrides["aem_author_token"] = args.token
    max_distance = getattr(args, "max_distance", None)
    if max_distance is not None:
        if max_distance < 0:
            raise SystemExit("--max-distance must be >= 0")
        overrides["similar_path_max_distance"] = max_distance
    return settings.model_copy(update=overrides) if overrides else settings


def _aggregate(input_path: str, overrides: list[str] | None, code_fix_flow: bool, output: str | None) -> None:
    suggestions = _read_json(input_path)
    if not isinstance(suggestions, list):
        raise SystemExit("Input must be a JSON list of suggestions")
    granularity = _parse_overrides(overrides) or settings.aggregation_granularity_overrides or None
    groups = process_suggestions_for_mystique(
        suggestions,
        granularity=granularity,
        use_code_fix_flow=code_fix_flow or settings.mystique_use_code_fix_flow,
    )
    _emit([group.to_message_data() for group in groups], output)


def _locales(code: str) -> None:
    _emit(
        {
            "locale": code,
            "root": default_tree.find_root_for_locale(code),
            "caseVariations": default_tree.generate_case_variations(code),
            "siblings": default_tree.find_siblings(code),
            "similarRoots": default_tree.find_similar_language_roots(code),
        },
        None,
    )


async def _reconcile_opportunity(opportunity_id: uuid.UUID) -> fix_entities.ReconcileResult:
    return await fix_entities.publish_deployed_fix_entities(
        db_session.SessionLocal,
        opportunity_id=opportunity_id,
        is_issue_still_broken=fix_entities.url_still_broken,
    )


def _reconcile_fixes(opportunity_id: str | None) -> None:
    if not opportunity_id:
        published = asyncio.run(fix_entity_scheduler._run_once())
        print(f"Published fix entities: {published}")
        return

    result = asyncio.run(_reconcile_opportunity(_parse_uuid(opportunity_id)))
    print(
        f"Opportunity {result.opportunity_id}: considered={result.considered} "
        f"published={result.published} skipped={result.skipped} errors={result.errors}"
    )
    try:
        result.raise_for_errors()
    except AuditEngineError as exc:
        raise SystemExit(str(exc)) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Content audit utilities")
    subparsers = parser.add_subparsers(dest="command")

    analyze = subparsers.add_parser("analyze-paths", help="Suggest fixes for broken content fragment paths")
    analyze.add_argument("--input", required=True, help="JSON list of paths or {url, requestCount} objects")
    analyze.add_argument("--author-url", help="Author instance base URL (defaults to AEM_AUTHOR_URL)")
    analyze.add_argument("--token", help="Author API bearer token (defaults to AEM_AUTHOR_TOKEN)")
    analyze.add_argument("--max-distance", type=int, help="Maximum edit distance for similar paths")
    analyze.add_argument("--output", help="Write the result to this file instead of stdout")

    aggregate = subparsers.add_parser("aggregate", help="Group accessibility suggestions for Mystique")
    aggregate.add_argument("--input", required=True, help="JSON list of suggestions ({id, status, data})")
    aggregate.add_argument(
        "--granularity",
        action="append",
        metavar="TYPE=GRANULARITY",
        help="Override the aggregation granularity of an issue type (repeatable)",
    )
    aggregate.add_argument("--code-fix-flow", action="store_true", help="Resend guidance until a code fix exists")
    aggregate.add_argument("--output", help="Write the groups to this file instead of stdout")

    locales = subparsers.add_parser("locales", help="Show fallback candidates for a locale code")
    locales.add_argument("code", help="Locale or country code, e.g. en-US or FR")

    s3_url = subparsers.add_parser("s3-url", help="Rebuild the page URL encoded in a scrape result key")
    s3_url.add_argument("key", help="Object key, e.g. scrapes/www_example_com_page.json")

    reconcile = subparsers.add_parser("reconcile-fixes", help="Publish deployed fixes that are live")
    reconcile.add_argument("--opportunity-id", help="Only reconcile this opportunity")

    subparsers.add_parser("init-db", help="Create database tables")
    return parser


def _run_cli_command(args: argparse.Namespace) -> bool:
    if args.command == "analyze-paths":
        cfg = _analysis_settings(args)
        result = asyncio.run(analyze_broken_paths(_load_broken_paths(args.input), settings=cfg))
        _emit(result, args.output)
        if not result.get("success"):
            raise SystemExit(result.get("error") or "Analysis failed")
        return True

    if args.command == "aggregate":
        _aggregate(args.input, args.granularity, bool(args.code_fix_flow), args.output)
        return True

    if args.command == "locales":
        _locales(args.code)
        return True

    if args.command == "s3-url":
        url = reconstruct_url_from_s3_key(args.key)
        if not url:
            raise SystemExit(f"Not a page key: {args.key}")
        print(url)
        return True

    if args.command == "reconcile-fixes":
        _reconcile_fixes(args.opportunity_id)
        return True

    if args.command == "init-db":
        asyncio.run(db_session.init_models())
        print("Database tables created")
        return True

    return False


def main():
    configure_logging(settings.json_logs)
    init_sentry()
    parser = _build_parser()
    args = parser.parse_args()
    if not _run_cli_command(args):
        parser.print_help()


if __name__ == "__main__":
    main()
