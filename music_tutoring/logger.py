import logging
import sys
import json
from datetime import datetime, timezone
from pathlib import Path
from music_tutoring.config import get_settings

# Configure logging
def setup_logger(name: str = "server"):
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Handlers are attached once per process, even if this module is reloaded
    if logger.handlers:
        return logger

    # Create formatters
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_formatter = logging.Formatter(
        '%(levelname)s: %(message)s'
    )

    # Create handlers
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(logging.INFO)
    logger.addHandler(console_handler)

    settings = get_settings()
    if settings.log_to_file:
        # Create logs directory if it doesn't exist
        logs_dir = Path(settings.logs_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            logs_dir / f"server_{datetime.now().strftime('%Y%m%d')}.log"
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(logging.INFO)
        logger.addHandler(file_handler)

    return logger

class SecurityAuditLogger:
    """Writes one JSON line per authentication or authorization event."""

    def __init__(self):
        self.logger = logging.getLogger('security_audit')
        self.logger.setLevel(logging.INFO)
        settings = get_settings()
        if settings.log_to_file and not self.logger.handlers:
            logs_dir = Path(settings.logs_dir)
            logs_dir.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(logs_dir / 'security_audit.log')
            handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s'))
            self.logger.addHandler(handler)

    def log_security_event(self, event_type: str, user_id: str, details: dict):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "user_id": user_id,
            "details": details
        }
        self.logger.info(json.dumps(log_entry))

# Create global logger instances
# Use these single instances across all files
logger = setup_logger()
audit_logger = SecurityAuditLogger()
