import argparse
import sys
import traceback
from typing import List, Optional, Sequence

from catalog import ALL_REPOS, PackageCollection
from models import PackageModel, PackageRecord
from pacman_conf import config_cache
from settings import settings


def format_exception(exc: BaseException) -> str:
    """Classification, message and traceback of an error, ready for display."""
    if isinstance(exc, OSError):
        topic = "An I/O error occurred."
    else:
        topic = "An error occurred."
    topic += f"  [{type(exc).__module__}.{type(exc).__name__}]"
    if str(exc):
        topic += f"\n{exc}"
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return f"{topic}\n\n{trace}"


def _format_row(it: PackageRecord) -> str:
    return "\t".join([it.name, it.repo or "local", it.repo_version, it.local_version, it.description])


def build_collection(repo: str, conf_path: str, strict: bool) -> PackageCollection:
    config = config_cache.get(conf_path)
    return PackageCollection(
        repo,
        config,
        temp_root=settings.get_temp_root(),
        strict=strict,
        max_workers=settings.get_extraction_workers(),
    )


def filtered_records(
    records: Sequence[PackageRecord],
    text: str = "",
    repo: str = PackageModel.ALL,
    installed_only: bool = False,
) -> List[PackageRecord]:
    model = PackageModel(list(records))
    model.set_text_filter(text)
    model.set_repo_filter(repo)
    model.set_installed_only(installed_only)
    return [model.item_at(row) for row in range(model.filtered_count())]


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Karun package catalog")
    parser.add_argument(
        "--repo",
        default=settings.get("default_repo", ALL_REPOS),
        help=f"Repository to list, or {ALL_REPOS} for every configured repository.",
    )
    parser.add_argument(
        "--config",
        default=settings.get("pacman_conf_path"),
        help="Path to pacman.conf.",
    )
    parser.add_argument("--search", default="", help="Only show packages whose name or description matches.")
    parser.add_argument("--installed", action="store_true", help="Only show installed packages.")
    parser.add_argument(
        "--local-only",
        action="store_true",
        help="Only show installed packages that belong to no sync repository.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=bool(settings.get("strict_parsing", False)),
        help="Abort when a package description cannot be read.",
    )
    args = parser.parse_args(argv)

    try:
        pkgs = build_collection(args.repo, args.config, args.strict)
    except Exception as exc:
        print(format_exception(exc), file=sys.stderr)
        return 1

    repo_filter = PackageModel.LOCAL if args.local_only else PackageModel.ALL
    for it in filtered_records(list(pkgs), args.search, repo_filter, args.installed):
        print(_format_row(it))

    errors = pkgs.consume_errors()
    if errors:
        print(f"{len(errors)} package(s) could not be read:", file=sys.stderr)
        for err in errors:
            print(f"  {err['path']}: {err['message']}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
