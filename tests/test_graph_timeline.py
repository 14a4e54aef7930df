from __future__ import annotations

import unittest
from typing import Any

from timeline_scraper.errors import MalformedResponseError
from timeline_scraper.graph_timeline import (
    LimitedTweet,
    PlainTweet,
    Tombstone,
    UnknownResult,
    classify_result,
    normalize_conversation_page,
    normalize_graph_page,
)


def _tweet(tweet_id: str, *, user_id: str = "10", **legacy_extra: Any) -> dict[str, Any]:
    legacy: dict[str, Any] = {
        "id_str": tweet_id,
        "user_id_str": user_id,
        "conversation_id_str": tweet_id,
        "created_at": "Thu Apr 24 08:31:28 +0000 2025",
        "full_text": f"text {tweet_id}",
        "favorite_count": 5,
        "reply_count": 0,
        "retweet_count": 1,
        "quote_count": 2,
        "entities": {"hashtags": [], "user_mentions": [], "urls": []},
    }
    legacy.update(legacy_extra)
    return {
        "__typename": "Tweet",
        "rest_id": tweet_id,
        "core": {
            "user_results": {
                "result": {
                    "__typename": "User",
                    "rest_id": user_id,
                    "legacy": {"screen_name": "alice", "name": "Alice"},
                }
            }
        },
        "views": {"count": "42", "state": "EnabledWithCount"},
        "legacy": legacy,
    }


def _item(result: dict[str, Any], *, display_type: str = "Tweet", sort_index: str | None = None) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "entryId": "tweet-x",
        "content": {
            "entryType": "TimelineTimelineItem",
            "itemContent": {
                "itemType": "TimelineTweet",
                "tweetDisplayType": display_type,
                "tweet_results": {"result": result},
            },
        },
    }
    if sort_index is not None:
        entry["sortIndex"] = sort_index
    return entry


def _cursor(kind: str, value: str) -> dict[str, Any]:
    return {
        "entryId": f"cursor-{kind.lower()}-1",
        "content": {"entryType": "TimelineTimelineCursor", "cursorType": kind, "value": value},
    }


def _tombstone() -> dict[str, Any]:
    return {"__typename": "TweetTombstone", "tombstone": {"text": {"text": "This Post was deleted."}}}


def _payload(instructions: list[dict[str, Any]], *, container: str = "timeline_v2") -> dict[str, Any]:
    return {
        "data": {
            "user": {
                "result": {
                    "__typename": "User",
                    container: {"timeline": {"instructions": instructions}},
                }
            }
        }
    }


def _add(entries: list[dict[str, Any]]) -> dict[str, Any]:
    return {"type": "TimelineAddEntries", "entries": entries}


class TestClassifyResult(unittest.TestCase):
    def test_variants(self) -> None:
        self.assertIsInstance(classify_result(_tweet("1")), PlainTweet)
        self.assertIsInstance(
            classify_result({"__typename": "TweetWithVisibilityResults", "tweet": _tweet("1")}),
            LimitedTweet,
        )
        stone = classify_result(_tombstone())
        self.assertIsInstance(stone, Tombstone)
        assert isinstance(stone, Tombstone)
        self.assertEqual(stone.reason, "This Post was deleted.")
        self.assertIsInstance(classify_result({"__typename": "TweetUnavailable"}), Tombstone)
        self.assertIsInstance(classify_result({"__typename": "SomethingNew"}), UnknownResult)
        self.assertIsInstance(classify_result(None), UnknownResult)

    def test_visibility_wrapper_without_tweet_is_unknown(self) -> None:
        self.assertIsInstance(classify_result({"__typename": "TweetWithVisibilityResults"}), UnknownResult)


class TestNormalizeGraphPage(unittest.TestCase):
    def test_tombstone_between_two_posts(self) -> None:
        payload = _payload(
            [_add([_item(_tweet("2")), _item(_tombstone()), _item(_tweet("1")), _cursor("Bottom", "b1")])]
        )

        page = normalize_graph_page(payload)

        self.assertEqual([p.post_id for p in page.posts], ["2", "1"])
        self.assertEqual(page.skipped, 1)
        self.assertEqual(page.next_cursor, "b1")

    def test_unwraps_visibility_results(self) -> None:
        wrapped = {
            "__typename": "TweetWithVisibilityResults",
            "tweet": _tweet("5"),
            "limitedActionResults": {"limited_actions": [{"action": "Reply"}]},
        }
        page = normalize_graph_page(_payload([_add([_item(wrapped)])]))
        self.assertEqual([p.post_id for p in page.posts], ["5"])

    def test_unknown_wrapper_is_skipped(self) -> None:
        page = normalize_graph_page(
            _payload([_add([_item({"__typename": "PromotedThing"}), _item(_tweet("1"))])])
        )
        self.assertEqual([p.post_id for p in page.posts], ["1"])
        self.assertEqual(page.skipped, 1)

    def test_extracts_graph_fields(self) -> None:
        tweet = _tweet("9")
        tweet["note_tweet"] = {"note_tweet_results": {"result": {"text": "a much longer body"}}}
        tweet["quoted_status_result"] = {"result": _tweet("8")}
        tweet["legacy"]["retweeted_status_result"] = {
            "result": {"__typename": "TweetWithVisibilityResults", "tweet": _tweet("7")}
        }

        page = normalize_graph_page(_payload([_add([_item(tweet, display_type="SelfThread", sort_index="999")])]))
        post = page.posts[0]

        self.assertEqual(post.text, "a much longer body")
        self.assertEqual(post.views, 42)
        self.assertEqual(post.quoted_id, "8")
        self.assertEqual(post.retweeted_id, "7")
        self.assertEqual(post.author_id, "10")
        self.assertEqual(post.username, "alice")
        self.assertEqual(post.quote_count, 2)
        self.assertTrue(post.is_self_thread)
        self.assertEqual(post.sort_index, "999")

    def test_author_from_user_core(self) -> None:
        tweet = _tweet("1")
        tweet["core"]["user_results"]["result"] = {
            "__typename": "User",
            "rest_id": "10",
            "core": {"screen_name": "newstyle", "name": "New Style"},
            "legacy": {},
        }
        post = normalize_graph_page(_payload([_add([_item(tweet)])])).posts[0]
        self.assertEqual(post.username, "newstyle")
        self.assertEqual(post.name, "New Style")

    def test_missing_author_is_skipped(self) -> None:
        tweet = _tweet("1")
        tweet["core"] = {}
        del tweet["legacy"]["user_id_str"]
        page = normalize_graph_page(_payload([_add([_item(tweet), _item(_tweet("2"))])]))
        self.assertEqual([p.post_id for p in page.posts], ["2"])
        self.assertEqual(page.skipped, 1)

    def test_author_id_from_legacy_when_user_core_missing(self) -> None:
        tweet = _tweet("1")
        del tweet["core"]
        page = normalize_graph_page(_payload([_add([_item(tweet)])]))

        self.assertEqual(page.skipped, 0)
        self.assertEqual(len(page.posts), 1)
        post = page.posts[0]
        self.assertEqual(post.author_id, "10")
        self.assertIsNone(post.username)
        self.assertIsNone(post.name)

    def test_flattens_conversation_modules_in_order(self) -> None:
        module = {
            "entryId": "profile-conversation-1",
            "content": {
                "entryType": "TimelineTimelineModule",
                "items": [
                    {"entryId": "a", "item": {"itemContent": {"tweet_results": {"result": _tweet("3")}}}},
                    {"entryId": "b", "item": {"itemContent": {"tweet_results": {"result": _tombstone()}}}},
                    {"entryId": "c", "item": {"itemContent": {"tweet_results": {"result": _tweet("4")}}}},
                ],
            },
        }
        page = normalize_graph_page(_payload([_add([_item(_tweet("1")), module, _item(_tweet("5"))])]))

        self.assertEqual([p.post_id for p in page.posts], ["1", "3", "4", "5"])
        self.assertEqual([p.position for p in page.posts], [0, 1, 2, 3])
        self.assertEqual(page.skipped, 1)

    def test_top_cursor_ignored_and_bottom_kept(self) -> None:
        page = normalize_graph_page(
            _payload([_add([_cursor("Top", "t"), _item(_tweet("1")), _cursor("Bottom", "b")])])
        )
        self.assertEqual(page.next_cursor, "b")

        only_top = normalize_graph_page(_payload([_add([_cursor("Top", "t"), _item(_tweet("1"))])]))
        self.assertEqual(only_top.next_cursor, "")

    def test_replace_entry_cursor(self) -> None:
        replace = {"type": "TimelineReplaceEntry", "entry_id_to_replace": "cursor-bottom-1", "entry": _cursor("Bottom", "r")}
        page = normalize_graph_page(_payload([_add([_item(_tweet("1"))]), replace]))
        self.assertEqual(page.next_cursor, "r")

    def test_self_referential_cursor_is_exhausted(self) -> None:
        payload = _payload([_add([_item(_tweet("1")), _cursor("Bottom", "c1")])])
        self.assertEqual(normalize_graph_page(payload, request_cursor="c1").next_cursor, "")
        self.assertEqual(normalize_graph_page(payload, request_cursor="c0").next_cursor, "c1")

    def test_cursor_value_passed_through_unchanged(self) -> None:
        page = normalize_graph_page(_payload([_add([_item(_tweet("1")), _cursor("Bottom", " b1== ")])]))
        self.assertEqual(page.next_cursor, " b1== ")

        blank = normalize_graph_page(_payload([_add([_item(_tweet("1")), _cursor("Bottom", "   ")])]))
        self.assertEqual(blank.next_cursor, "")

    def test_pin_entry_flagged_and_kept_in_source_order(self) -> None:
        pin = {"type": "TimelinePinEntry", "entry": _item(_tweet("100"))}
        page = normalize_graph_page(_payload([{"type": "TimelineClearCache"}, pin, _add([_item(_tweet("2"))])]))

        self.assertEqual([p.post_id for p in page.posts], ["100", "2"])
        self.assertTrue(page.posts[0].is_pinned)
        self.assertFalse(page.posts[1].is_pinned)

    def test_newer_timeline_container(self) -> None:
        page = normalize_graph_page(_payload([_add([_item(_tweet("1"))])], container="timeline"))
        self.assertEqual([p.post_id for p in page.posts], ["1"])

    def test_user_without_timeline_gives_empty_page(self) -> None:
        page = normalize_graph_page({"data": {"user": {}}})
        self.assertEqual(page.posts, ())
        self.assertEqual(page.next_cursor, "")

    def test_normalizing_twice_is_identical(self) -> None:
        payload = _payload([_add([_item(_tweet("2")), _item(_tombstone()), _item(_tweet("1")), _cursor("Bottom", "b")])])
        self.assertEqual(normalize_graph_page(payload), normalize_graph_page(payload))

    def test_errors_without_data_raise(self) -> None:
        with self.assertRaises(MalformedResponseError) as ctx:
            normalize_graph_page({"errors": [{"message": "Rate limit exceeded", "code": 88}]})
        self.assertIn("Rate limit exceeded", str(ctx.exception))

        with self.assertRaises(MalformedResponseError):
            normalize_graph_page("<html>")


class TestNormalizeConversationPage(unittest.TestCase):
    def test_parses_thread_entries(self) -> None:
        module = {
            "entryId": "conversationthread-2",
            "content": {
                "entryType": "TimelineTimelineModule",
                "items": [
                    {"item": {"itemContent": {"tweetDisplayType": "SelfThread", "tweet_results": {"result": _tweet("2")}}}},
                    {"item": {"itemContent": {"itemType": "TimelineTimelineCursor", "cursorType": "ShowMore", "value": "m"}}},
                ],
            },
        }
        payload = {
            "data": {
                "threaded_conversation_with_injections_v2": {
                    "instructions": [
                        _add([_item(_tweet("1")), module]),
                        {"type": "TimelineTerminateTimeline", "direction": "Top"},
                    ]
                }
            }
        }

        page = normalize_conversation_page(payload)

        self.assertEqual([p.post_id for p in page.posts], ["1", "2"])
        self.assertTrue(page.posts[1].is_self_thread)
        self.assertEqual(page.next_cursor, "")


if __name__ == "__main__":
    unittest.main()
