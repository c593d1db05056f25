import functools
import logging
import re

from .normalizer import decode_body, normalize_content, normalize_url
from .request_log import RequestLog
from .response_builder import build_response
from .rules import DEFAULT_RULE, load_rules

logger = logging.getLogger("MockEngine")

ALWAYS_FILTERED_HEADERS = ("host", "connection", "expect")


@functools.lru_cache(maxsize=256)
def _url_pattern(url_filter):
    return re.compile("^/?" + url_filter + "$")


class MockEngine:
    """Match requests against the rule list and build mock responses"""

    def __init__(self, rules=(), request_log=None):
        self.rules = tuple(rules)
        self.request_log = request_log or RequestLog()

    @classmethod
    def from_config(cls, config_file, request_log=None):
        return cls(load_rules(config_file), request_log=request_log)

    def match(self, url, method, headers=None):
        """Return the first rule matching the request, or the default rule"""
        path = url.split("?", 1)[0]
        for rule in self.rules:
            if rule.method and rule.method != method:
                continue
            if not _url_pattern(rule.url_filter).search(path):
                continue
            if rule.headers_filter is None:
                return rule
            headers = headers or {}
            if all(name in headers and headers[name] == value
                   for name, value in rule.headers_filter.items()):
                return rule
        return DEFAULT_RULE

    def should_filter_header(self, name, url, method, headers):
        if name in ALWAYS_FILTERED_HEADERS:
            return True
        return name in self.match(url, method, headers).ignored_headers

    def filter_headers(self, headers, url, method):
        """Headers worth logging for this request"""
        filtered = {}
        for name, value in headers.items():
            if self.should_filter_header(name, url, method, headers):
                continue
            if name == "content-length" and value == "0":
                continue
            filtered[name] = value
        return filtered

    def describe_request(self, method, url, headers, body):
        return self.request_log.describe(
            method,
            normalize_url(url),
            self.filter_headers(headers, url, method),
            normalize_content(decode_body(body)),
        )

    def handle(self, method, url, headers, body=b""):
        """Log the request, then answer it from the matching rule"""
        self.request_log.emit(self.describe_request(method, url, headers, body))

        rule = self.match(url, method, headers)
        logger.debug("Response rule for %s %s: %r", method, url, rule)

        accept_encoding = (headers.get("accept-encoding")
                           or headers.get("Accept-Encoding")
                           or "")
        return build_response(rule, accept_encoding)
