import time
import logging

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, Mapping, Optional

from prometheus_client.core import GaugeMetricFamily

from kafka_connect_exporter.connect_fetcher import ConnectFetcher, FetchError
from kafka_connect_exporter.structs import ConnectorTask, TaskCounts

RUNNING_TASK_METRIC = "kafka_connect_running_task"
FAILING_TASK_METRIC = "kafka_connect_failing_task"
LABELS = ["cluster", "task"]


def count_tasks(tasks: Iterable[ConnectorTask]) -> TaskCounts:
    """Splits tasks into running and failing; any state but RUNNING is failing."""
    counts = TaskCounts()
    for task in tasks:
        if task.running:
            counts.running += 1
        else:
            counts.failing += 1
    return counts


class ConnectCollector:
    """
    Prometheus collector reporting task health of every connector on a set
    of Kafka Connect clusters. Each scrape runs its own collection cycle;
    nothing is kept between cycles.
    """

    def __init__(self, clusters: Mapping[str, str], fetcher: ConnectFetcher = None,
                 workers: int = 1, scrape_timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        if scrape_timeout is not None and not scrape_timeout > 0:
            raise ValueError(f"scrape_timeout must be greater than 0, got {scrape_timeout}")
        self.clusters = clusters
        self.fetcher = fetcher or ConnectFetcher()
        self.workers = max(1, workers)
        self.scrape_timeout = scrape_timeout
        self.clock = clock

    def describe(self) -> list[GaugeMetricFamily]:
        """Declares the metric schema without contacting any cluster."""
        return list(self._metric_families())

    def collect(self) -> Iterable[GaugeMetricFamily]:
        deadline = self.clock() + self.scrape_timeout if self.scrape_timeout is not None else None
        running, failing = self._metric_families()

        for cluster, connectors in self._collect_clusters(deadline):
            for connector, counts in connectors.items():
                running.add_metric([cluster, connector], counts.running)
                failing.add_metric([cluster, connector], counts.failing)

        yield running
        yield failing

    def collect_cluster(self, cluster: str, endpoint: str, deadline: Optional[float] = None) -> Dict[str, TaskCounts]:
        """
        Gathers task counts for every connector of one cluster.
        Connectors that cannot be fetched are left out; a cluster whose
        connector list cannot be fetched yields nothing.
        """
        timeout = self._remaining(deadline)
        if timeout == 0:
            logging.warning(f"[ConnectCollector] Scrape deadline reached, skipping cluster {cluster}")
            return {}

        try:
            connectors = self.fetcher.list_connectors(endpoint, timeout=timeout)
        except FetchError as e:
            logging.warning(f"[ConnectCollector] Could not list connectors of cluster {cluster}: {e}")
            return {}

        logging.debug(f"[ConnectCollector] Found {len(connectors)} connectors in cluster {cluster}")
        results: Dict[str, TaskCounts] = {}
        for connector in connectors:
            timeout = self._remaining(deadline)
            if timeout == 0:
                logging.warning(f"[ConnectCollector] Scrape deadline reached, skipping remaining connectors of cluster {cluster}")
                break
            try:
                status = self.fetcher.fetch_status(endpoint, connector, timeout=timeout)
            except FetchError as e:
                logging.warning(f"[ConnectCollector] Could not fetch status of connector {connector} in cluster {cluster}: {e}")
                continue
            results[connector] = count_tasks(status.tasks)
        return results

    def _collect_clusters(self, deadline: Optional[float]):
        if self.workers == 1 or len(self.clusters) <= 1:
            for cluster, endpoint in self.clusters.items():
                yield cluster, self.collect_cluster(cluster, endpoint, deadline)
            return

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = {
                cluster: pool.submit(self.collect_cluster, cluster, endpoint, deadline)
                for cluster, endpoint in self.clusters.items()
            }
            for cluster, future in futures.items():
                yield cluster, future.result()

    def _remaining(self, deadline: Optional[float]) -> Optional[float]:
        """Per-call timeout left within the scrape budget; None means no budget, 0 means spent."""
        if deadline is None:
            return None
        left = deadline - self.clock()
        if left <= 0:
            return 0
        return min(left, self.fetcher.timeout)

    def _metric_families(self):
        return (
            GaugeMetricFamily(RUNNING_TASK_METRIC, "Number of running task", labels=LABELS),
            GaugeMetricFamily(FAILING_TASK_METRIC, "Number of failing task", labels=LABELS),
        )
