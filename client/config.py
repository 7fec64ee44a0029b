# Configuration management for the marketplace chat client
import os
import json
import argparse
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_API_URL = "http://localhost:8000/api/v1"
DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_RESEND_POLL_DELAY = 0.4
DEFAULT_MATCH_WINDOW_SECONDS = 10.0
DEFAULT_REQUEST_TIMEOUT = 10.0

class Config:
    """Configuration management for the chat client"""
    
    def __init__(self, config_dir: Optional[str] = None):
        # Default settings
        self.api_url = DEFAULT_API_URL
        self.user_id: Optional[str] = None
        self.poll_interval = DEFAULT_POLL_INTERVAL
        self.resend_poll_delay = DEFAULT_RESEND_POLL_DELAY
        self.match_window_seconds = DEFAULT_MATCH_WINDOW_SECONDS
        self.request_timeout = DEFAULT_REQUEST_TIMEOUT
        
        # Config paths
        self.config_dir = config_dir or os.path.expanduser("~/.marketchat")
        self.config_file = os.path.join(self.config_dir, "config.json")
        
        # Load existing configuration
        self.load_config()
    
    def load_config(self) -> None:
        """Load configuration from file if it exists"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, 'r') as f:
                    config_data = json.load(f)
                self.api_url = config_data.get("api_url", self.api_url)
                self.user_id = config_data.get("user_id", self.user_id)
                self.poll_interval = float(config_data.get("poll_interval", self.poll_interval))
                self.resend_poll_delay = float(config_data.get("resend_poll_delay", self.resend_poll_delay))
                self.match_window_seconds = float(config_data.get("match_window_seconds", self.match_window_seconds))
                self.request_timeout = float(config_data.get("request_timeout", self.request_timeout))
        except (OSError, ValueError) as e:
            logger.warning(f"Error loading config: {e}")
    
    def save_config(self) -> None:
        """Save current configuration to file"""
        try:
            os.makedirs(self.config_dir, exist_ok=True)
            config_data = {
                "api_url": self.api_url,
                "user_id": self.user_id,
                "poll_interval": self.poll_interval,
                "resend_poll_delay": self.resend_poll_delay,
                "match_window_seconds": self.match_window_seconds,
                "request_timeout": self.request_timeout
            }
            
            with open(self.config_file, 'w') as f:
                json.dump(config_data, f, indent=2)
        except OSError as e:
            logger.warning(f"Error saving config: {e}")
    
    def parse_args(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        """Parse command line arguments"""
        parser = argparse.ArgumentParser(description='Marketplace Chat Client')
        parser.add_argument('--api-url', help='API URL', default=self.api_url)
        parser.add_argument('--user-id', help='User to chat as', default=self.user_id)
        parser.add_argument('--poll-interval', type=float, help='Seconds between syncs', default=self.poll_interval)
        parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
        
        args = parser.parse_args(argv)
        
        # Update config with command line values
        self.api_url = args.api_url
        self.user_id = args.user_id
        self.poll_interval = args.poll_interval
        
        # Save updated config
        self.save_config()
        
        return args
