"""Entry point for running as a module."""
from corriente_sound.api import app
from corriente_sound.config import configure_logging, load_local_env_file, load_settings
import uvicorn
import os

if __name__ == "__main__":
    load_local_env_file()
    configure_logging(load_settings().log_level)
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
