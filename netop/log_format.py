"""
Custom logging formats that carry the identity of the state and custom
resource being synced
"""

# First Party
from alog import AlogJsonFormatter


class NetopJsonFormatter(AlogJsonFormatter):
    """Custom Log Format that extends AlogJsonFormatter to add the state name
    and the identifiers of the custom resource being synced. Records pick these
    up either from an explicit `resource`/`state` extra on the log call or from
    the values bound at construction.
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "process",
        "thread",
        "threadName",
        "state",
        "kind",
        "apiVersion",
        "resourceName",
        "resourceNamespace",
    ]

    def __init__(self, manifest=None, state_name=None):
        super().__init__()
        self.manifest = manifest
        self.state_name = state_name

    def format(self, record):
        if state_name := getattr(record, "state", self.state_name):
            record.state = state_name

        if resource := getattr(record, "resource", self.manifest):
            record.kind = resource.get("kind")
            record.apiVersion = resource.get("apiVersion")

            metadata = resource.get("metadata", {})
            record.resourceName = metadata.get("name")
            record.resourceNamespace = metadata.get("namespace")

        return super().format(record)
