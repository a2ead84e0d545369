from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client import write_to_textfile


class JobMetrics:
    """
    records job-level counters in a dedicated registry. A report job is
    a batch process, so the registry is dumped to a textfile for the
    node exporter instead of being served over HTTP.
    """

    def __init__(self, registry: "CollectorRegistry | None" = None) -> "None":
        self._registry: "CollectorRegistry" = registry or CollectorRegistry()
        self._requests: "Counter" = Counter(
            "adfcost_api_requests_total",
            "Total HTTP requests issued by endpoint kind",
            ["endpoint"],
            registry=self._registry,
        )
        self._retries: "Counter" = Counter(
            "adfcost_api_retries_total",
            "Total retried HTTP requests by endpoint kind",
            ["endpoint"],
            registry=self._registry,
        )
        self._credential_refreshes: "Counter" = Counter(
            "adfcost_credential_refreshes_total",
            "Total bearer credential handshakes",
            registry=self._registry,
        )
        self._records: "Counter" = Counter(
            "adfcost_records_fetched_total",
            "Total run records fetched by kind",
            ["kind"],
            registry=self._registry,
        )
        self._page_duration: "Histogram" = Histogram(
            "adfcost_page_fetch_duration_seconds",
            "Duration of single page fetches",
            ["endpoint"],
            registry=self._registry,
        )
        self._last_success: "Gauge" = Gauge(
            "adfcost_last_success_timestamp_seconds",
            "Unix timestamp of the last successfully assembled report",
            registry=self._registry,
        )

    @property
    def registry(self) -> "CollectorRegistry":
        return self._registry

    def inc_request(self, endpoint: "str") -> "None":
        self._requests.labels(endpoint=endpoint).inc()

    def inc_retry(self, endpoint: "str") -> "None":
        self._retries.labels(endpoint=endpoint).inc()

    def inc_credential_refresh(self) -> "None":
        self._credential_refreshes.inc()

    def add_records(self, kind: "str", count: "int") -> "None":
        self._records.labels(kind=kind).inc(count)

    def observe_page_duration(
        self, endpoint: "str", duration_seconds: "float"
    ) -> "None":
        self._page_duration.labels(endpoint=endpoint).observe(duration_seconds)

    def set_last_success(self, timestamp: "float") -> "None":
        self._last_success.set(timestamp)

    def write_textfile(self, path: "str") -> "None":
        """
        writes the registry in the text exposition format, atomically.
        """
        write_to_textfile(path, self._registry)
