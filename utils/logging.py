import logging
import logging.handlers
import os
import json
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any
from fastapi import Request

from utils.settings import get_settings


class AppLogger:
    """Application logger with request timing and downstream call tracking"""

    def __init__(self,
                 log_file: str = "logs/app.log",
                 max_file_size: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 5,
                 log_level: str = "INFO"):

        self.log_file = log_file
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        log_dir = Path(log_file).parent
        log_dir.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger("profe_ia")
        self.logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        console_handler = logging.StreamHandler()

        formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)-12s | %(funcName)-15s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        file_handler.setFormatter(formatter)
        console_handler.setFormatter(formatter)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

        self.request_stats = {
            "total_requests": 0,
            "failed_requests": 0,
            "ai_requests": 0,
            "broadcasts": 0,
            "start_time": time.time()
        }

        self.logger.info("🚀 Logging system initialized")
        self.logger.info(f"📁 Log file: {log_file}")

    def log_request_start(self, request: Request, endpoint: str) -> Dict[str, Any]:
        """Log the start of a request and return the context needed to close it"""
        client_ip = request.client.host if request.client else "unknown"

        request_info = {
            "endpoint": endpoint,
            "method": request.method,
            "client_ip": client_ip,
            "user_agent": request.headers.get("user-agent", "unknown")[:100],
            "timestamp": datetime.now().isoformat()
        }

        self.logger.info(f"🔵 REQUEST START | {endpoint} | IP: {client_ip}")
        return request_info

    def log_request_end(self, request_info: Dict[str, Any], duration_ms: float, status_code: int = 200):
        self.request_stats["total_requests"] += 1
        if status_code >= 500:
            self.request_stats["failed_requests"] += 1

        status_emoji = "✅" if status_code < 400 else "❌"

        self.logger.info(
            f"{status_emoji} REQUEST END | {request_info['endpoint']} | "
            f"Duration: {duration_ms:.2f}ms | Status: {status_code}"
        )

    def log_database_query(self, query_type: str, table: str, duration_ms: float, rows: Optional[int] = None):
        """Log database operations"""
        rows_part = f" | Rows: {rows}" if rows is not None else ""
        self.logger.debug(
            f"🗄️ DATABASE | {query_type} | Table: {table} | Duration: {duration_ms:.2f}ms{rows_part}"
        )

    def log_ai_request(self, model: str, grado: str, tema: str, duration_ms: float):
        """Log completion service requests"""
        self.request_stats["ai_requests"] += 1
        self.logger.info(
            f"🤖 AI REQUEST | {model} | Grado: {grado} | Tema: {tema[:50]} | Duration: {duration_ms:.2f}ms"
        )

    def log_broadcast(self, event: str, delivered: int, dropped: int = 0):
        self.request_stats["broadcasts"] += 1
        self.logger.info(
            f"📡 BROADCAST | {event} | Delivered: {delivered} | Dropped: {dropped}"
        )

    def log_error(self, error: BaseException, endpoint: str, extra_context: Optional[Dict] = None):
        """Log errors with context. The traceback goes to the log, never to the client."""
        context = f" | Context: {json.dumps(extra_context, default=str)}" if extra_context else ""

        self.logger.error(
            f"💥 ERROR | {endpoint} | {type(error).__name__}: {str(error)}{context}",
            exc_info=error
        )

    def get_request_stats(self) -> Dict[str, Any]:
        uptime_hours = (time.time() - self.request_stats["start_time"]) / 3600

        return {
            "total_requests": self.request_stats["total_requests"],
            "failed_requests": self.request_stats["failed_requests"],
            "ai_requests": self.request_stats["ai_requests"],
            "broadcasts": self.request_stats["broadcasts"],
            "requests_per_hour": round(self.request_stats["total_requests"] / max(uptime_hours, 0.01), 2),
            "uptime_hours": round(uptime_hours, 2),
            "log_file": self.log_file,
            "log_file_size_mb": round(os.path.getsize(self.log_file) / (1024*1024), 2) if os.path.exists(self.log_file) else 0
        }


# Global logger instance
_settings = get_settings()
app_logger = AppLogger(log_file=_settings.log_file, log_level=_settings.log_level)


# Convenience functions for easy usage
def log_request_start(request: Request, endpoint: str):
    return app_logger.log_request_start(request, endpoint)

def log_request_end(request_info: Dict[str, Any], duration_ms: float, status_code: int = 200):
    app_logger.log_request_end(request_info, duration_ms, status_code)

def log_database_query(query_type: str, table: str, duration_ms: float, rows: Optional[int] = None):
    app_logger.log_database_query(query_type, table, duration_ms, rows)

def log_ai_request(model: str, grado: str, tema: str, duration_ms: float):
    app_logger.log_ai_request(model, grado, tema, duration_ms)

def log_broadcast(event: str, delivered: int, dropped: int = 0):
    app_logger.log_broadcast(event, delivered, dropped)

def log_error(error: BaseException, endpoint: str, extra_context: Optional[Dict] = None):
    app_logger.log_error(error, endpoint, extra_context)

def get_request_stats():
    return app_logger.get_request_stats()
