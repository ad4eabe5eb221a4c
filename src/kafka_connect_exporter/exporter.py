from flask import Flask, Response
from prometheus_client import CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST

from kafka_connect_exporter.config import DEFAULT_METRICS_PATH

LANDING_PAGE = """<html>
<head><title>Kafka connect exporter</title></head>
<body>
<h1>Kafka connect exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


def create_app(registry: CollectorRegistry, metrics_path: str = DEFAULT_METRICS_PATH) -> Flask:
    """Builds the Flask app serving the registry and a landing page."""
    app = Flask(__name__)

    @app.route(metrics_path, methods=['GET'])
    def metrics():
        # Every scrape runs a full collection cycle on the request thread.
        return Response(generate_latest(registry), content_type=CONTENT_TYPE_LATEST)

    @app.route('/', methods=['GET'])
    def index():
        return Response(LANDING_PAGE.format(metrics_path=metrics_path), content_type='text/html; charset=utf-8')

    return app
