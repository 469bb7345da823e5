"""
Meal Planner - Logging setup and prompt logging.

setup_logging() configures the root logger once for the CLI and server.
log_prompt() writes each generator prompt + response to prompt_logs/
when enabled via MEALPLANNER_LOG_PROMPTS=1 or --log-prompts.
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

# Configuration
LOG_PROMPTS = os.getenv("MEALPLANNER_LOG_PROMPTS", "0") == "1"
LOG_DIR = Path("prompt_logs")

_call_counter: int = 0


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging with a compact format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def enable_prompt_logging(enabled: bool = True) -> None:
    """Enable or disable prompt logging."""
    global LOG_PROMPTS
    LOG_PROMPTS = enabled
    if enabled:
        LOG_DIR.mkdir(exist_ok=True)


def log_prompt(
    *,
    job_id: str | None,
    model: str,
    system_prompt: str,
    user_prompt: str,
    response: Any = None,
    error: str | None = None,
) -> Path | None:
    """
    Log a generator prompt and its response to a markdown file.

    Returns:
        Path to the log file, or None if logging is disabled
    """
    if not LOG_PROMPTS:
        return None

    global _call_counter
    _call_counter += 1

    LOG_DIR.mkdir(exist_ok=True)
    filepath = LOG_DIR / f"{_call_counter:03d}_{job_id or 'adhoc'}.md"

    content = f"""# Meal generation: {job_id or 'adhoc'}

**Time:** {datetime.now().isoformat()}
**Model:** {model}

## System Prompt

```
{system_prompt}
```

## User Prompt

```
{user_prompt}
```

## Response

"""
    if error:
        content += f"**ERROR:** {error}\n"
    elif response is not None:
        if hasattr(response, "model_dump"):
            response = response.model_dump()
        content += f"```json\n{json.dumps(response, indent=2, default=str)}\n```\n"

    filepath.write_text(content, encoding="utf-8")
    return filepath
