"""
sequence.py: Request types and the cyclic request sequence.
"""

from enum import Enum


class RequestType(Enum):
    CREATE = 1
    GET = 2
    UPDATE = 3
    SET = 4
    DESTROY = 5

    def __str__(self):
        return self.name.capitalize()

    @property
    def code(self):
        return self.name[0]

    @classmethod
    def parse(cls, text):
        """
        Accepts a one letter code (``C``) or a name (``create``).
        """
        name = text.strip().upper()
        for req_type in cls:
            if name == req_type.code or name == req_type.name:
                return req_type
        raise ValueError("Invalid request type: " + text)


class WorkloadItem(object):
    def __init__(self, req_type, num_requests=1):
        if num_requests <= 0:
            raise ValueError("Request count must be positive")
        self.req_type = req_type
        self.num_requests = num_requests

    def __eq__(self, other):
        if isinstance(other, WorkloadItem):
            return self.req_type == other.req_type and \
                self.num_requests == other.num_requests
        return False

    def __repr__(self):
        return "{}:{}".format(self.req_type.code, self.num_requests)


class RequestSequence(object):
    """
    Ordered list of ``WorkloadItem``. Engines walk it repeatedly.
    """
    def __init__(self, items):
        self.items = list(items)
        if len(self.items) == 0:
            raise ValueError("Empty request sequence")

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def __repr__(self):
        return ",".join(repr(item) for item in self.items)

    def has_type(self, req_type):
        return any(item.req_type == req_type for item in self.items)


def parse_sequence(text):
    """
    Parse ``"C:1,G:2,D"`` style sequences. A missing count means 1.
    """
    items = []
    for part in text.split(','):
        if not part.strip():
            continue
        name, _, count = part.partition(':')
        try:
            num_requests = int(count) if count.strip() else 1
        except ValueError:
            raise ValueError("Invalid request count in: " + part)
        items.append(WorkloadItem(RequestType.parse(name), num_requests))
    return RequestSequence(items)
