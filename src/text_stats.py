import json
import re
from collections import Counter
from datetime import datetime, timezone

# Anything other than word characters, whitespace and hyphens becomes a space
_STRIP_PATTERN = re.compile(r'[^\w\s-]')


def tokenize(text):
    """Split raw text into word tokens, dropping punctuation.

    Hyphens are kept so that hyphenated words stay a single token.
    """
    if text is None:
        raise TypeError('text must not be None')
    return _STRIP_PATTERN.sub(' ', text).split()


def count_words(tokens):
    """Count tokens case-insensitively and return a plain dict."""
    counts = Counter()
    for token in tokens:
        word = token.strip().lower()
        if word:
            counts[word] += 1
    return dict(counts)


def format_timestamp(moment):
    return moment.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def build_result(word_counts, processed_at=None):
    if processed_at is None:
        processed_at = datetime.now(timezone.utc)

    return {
        'wordCounts': word_counts,
        'totalWordCount': sum(word_counts.values()),
        'uniqueWordCount': len(word_counts),
        'processedAt': format_timestamp(processed_at),
    }


def to_json(result):
    return json.dumps(result, indent=2, ensure_ascii=False)
