import json
import sys
import threading


def stdout_sink(text):
    sys.stdout.write(text + "\n")
    sys.stdout.flush()


class RequestLog:
    """Emit a canonical, diff-friendly record of every received request"""

    def __init__(self, sink=None):
        self.sink = sink or stdout_sink
        self._lock = threading.Lock()

    def describe(self, method, url, headers, content):
        return {
            'method': method,
            'url': url,
            'headers': dict(headers) if headers else {},
            'content': content,
        }

    def format_record(self, record):
        """Key-sorted, indented JSON so identical requests give identical text"""
        return json.dumps(record, sort_keys=True, indent=2, ensure_ascii=False)

    def emit(self, record):
        text = self.format_record(record)
        with self._lock:
            self.sink(text)
        return text
