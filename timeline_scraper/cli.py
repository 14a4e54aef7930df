from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

from .client import TimelineClient
from .config import config_sha256, load_config, resolve_runtime_secrets
from .config_schema import AppConfig
from .errors import ConfigError, MalformedResponseError, TransportError
from .fetchers import make_thread_fetcher, make_timeline_fetcher
from .lookup import find_by_id
from .page import PageFetcher, ThreadFetcher
from .pagination import TimelineStream
from .run_log import RunLogger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="timeline_scraper")

    subparsers = parser.add_subparsers(dest="command", required=True)

    timeline = subparsers.add_parser(
        "timeline",
        help="Stream a user's posts into a JSONL file.",
    )
    timeline.add_argument("--config", required=True, help="Path to YAML config file.")
    timeline.add_argument("--user-id", required=True, help="Numeric ID of the timeline owner.")
    timeline.add_argument(
        "--count",
        type=int,
        default=None,
        help="Maximum number of posts to fetch (defaults to stream.default_count).",
    )
    timeline.add_argument("--out", required=True, help="Output directory for posts and logs.")
    timeline.add_argument(
        "--offline",
        action="store_true",
        help="Serve a synthetic timeline without network calls.",
    )
    timeline.set_defaults(_handler=_cmd_timeline)

    tweet = subparsers.add_parser("tweet", help="Look up a single post by ID.")
    tweet.add_argument("--config", required=True, help="Path to YAML config file.")
    tweet.add_argument("--id", required=True, dest="post_id", help="Post ID to look up.")
    tweet.add_argument(
        "--offline",
        action="store_true",
        help="Serve a synthetic thread without network calls.",
    )
    tweet.set_defaults(_handler=_cmd_tweet)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _timeline_fetcher(cfg: AppConfig, *, offline: bool, logger: RunLogger | None) -> PageFetcher:
    if offline:
        from .offline import OfflineTimelineFetcher

        return OfflineTimelineFetcher()

    secrets = resolve_runtime_secrets(cfg)
    client = TimelineClient(secrets, api=cfg.api, retry=cfg.retry.policy(), logger=logger)
    return make_timeline_fetcher(client, cfg.api.account_mode)


def _thread_fetcher(cfg: AppConfig, *, offline: bool) -> ThreadFetcher:
    if offline:
        from .offline import OfflineThreadFetcher

        return OfflineThreadFetcher()

    secrets = resolve_runtime_secrets(cfg)
    client = TimelineClient(secrets, api=cfg.api, retry=cfg.retry.policy())
    return make_thread_fetcher(client, cfg.api.account_mode)


def _cmd_timeline(args: argparse.Namespace) -> int:
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    log_path = out_dir / "run.log"
    posts_path = out_dir / "posts.jsonl"

    with RunLogger.open(log_path, overwrite=True) as log:
        log.set_owner(args.user_id)
        log.info(
            "timeline_command_started",
            config_path=str(args.config),
            out_dir=str(out_dir),
            offline=bool(args.offline),
        )

        try:
            cfg = load_config(args.config)
            count = args.count if args.count is not None else cfg.stream.default_count
            if count < 1:
                raise ConfigError("--count must be >= 1")

            log.info(
                "config_loaded",
                config_sha256=config_sha256(cfg),
                account_mode=cfg.api.account_mode,
                max_page_size=cfg.api.max_page_size,
                count=count,
            )

            fetch_page = _timeline_fetcher(cfg, offline=bool(args.offline), logger=log)

            with posts_path.open("w", encoding="utf-8", newline="\n") as fp:
                with TimelineStream(
                    fetch_page,
                    args.user_id,
                    count,
                    max_page_size=cfg.api.max_page_size,
                    logger=log,
                ) as stream:
                    for post in stream:
                        fp.write(json.dumps(post.to_dict(), ensure_ascii=False, sort_keys=True) + "\n")
                    stats = stream.stats

            log.info(
                "timeline_command_completed",
                pages=stats.pages,
                emitted=stats.emitted,
                skipped_entries=stats.skipped_entries,
                duplicates=stats.duplicates,
                stop_reason=stats.stop_reason,
            )

            print(f"pages={stats.pages}")
            print(f"posts={stats.emitted}")
            print(f"skipped_entries={stats.skipped_entries}")
            print(f"stop_reason={stats.stop_reason}")
            print(f"posts_jsonl={posts_path}")
            print(f"run_log={log_path}")
            return 0
        except Exception as e:
            log.exception("timeline_command_failed", exc=e)
            raise


def _cmd_tweet(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    fetch_thread = _thread_fetcher(cfg, offline=bool(args.offline))

    post = find_by_id(fetch_thread, args.post_id)
    if post is None:
        print("not_found")
        return 4

    print(json.dumps(post.to_dict(), indent=2, ensure_ascii=False, sort_keys=True))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except (TransportError, MalformedResponseError) as e:
        _eprint(str(e))
        return 3
    except ValueError as e:
        _eprint(str(e))
        return 2
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
