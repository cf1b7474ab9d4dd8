import multiprocessing
import os

wsgi_app = "core.wsgi:application"
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"

# Verification sends and broadcasts wait on the SMS gateway and SMTP server
timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
graceful_timeout = 30
keepalive = 2
max_requests = 1000
max_requests_jitter = 50

# Loaded once in the master, so the draft cleanup scheduler runs in a single process
preload_app = True

# Client IPs for login auditing come from X-Forwarded-For set by the proxy
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
access_log_format = '%({x-forwarded-for}i)s %(h)s "%(r)s" %(s)s %(b)s %(L)ss'

proc_name = "restaurant_loyalty"
