# File: backend/app/core/metrics.py

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

TREE_SYNC_RUNS = Counter(
    'tree_sync_runs_total',
    'Jumlah eksekusi sinkronisasi tree -> blocks',
    ['status']
)

TREE_SYNC_RECORDS = Counter(
    'tree_sync_records_total',
    'Jumlah baris block yang di-upsert atau dihapus oleh sinkronisasi',
    ['operation']
)

TREE_SYNC_DURATION = Histogram(
    'tree_sync_duration_seconds',
    'Durasi satu kali sinkronisasi tree'
)
