import os

# Server socket
port = int(os.environ.get('PORT', 5000))
bind = f'0.0.0.0:{port}'
# Render terminates TLS in front of the app
forwarded_allow_ips = os.environ.get('FORWARDED_ALLOW_IPS', '*')

# Worker processes
workers = int(os.environ.get('WEB_CONCURRENCY', 2))
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', 4))
wsgi_app = 'wsgi:app'
preload_app = os.environ.get('FLASK_CONFIG', 'production') == 'production'

# Logging
loglevel = os.environ.get('LOG_LEVEL', 'info')
accesslog = '-'
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(M)sms "%(a)s"'
errorlog = '-'
capture_output = True

# Timeouts
# A receipts archive renders one PDF per payment in a single request
timeout = int(os.environ.get('GUNICORN_TIMEOUT', 180))
graceful_timeout = 30
keepalive = 5

# Request limits
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

# Worker recycling
max_requests = int(os.environ.get('GUNICORN_MAX_REQUESTS', 500))
max_requests_jitter = 50

reload = os.environ.get('FLASK_CONFIG') == 'development'


def post_fork(server, worker):
    # connections opened while preloading must not be shared across workers
    from app_models import db
    from wsgi import app
    with app.app_context():
        db.engine.dispose()
    server.log.info("Worker %s ready", worker.pid)
