"""
Prompts package for ZenWealth.
Contains the system prompt and task templates for the market data backend.
"""

import os
from typing import Dict

# Cache for loaded prompts
_prompt_cache: Dict[str, str] = {}

def load_prompt(filename: str) -> str:
    """
    Load a prompt from a text file.

    Args:
        filename: Name of the prompt file (e.g., 'stock_prices.txt')

    Returns:
        Prompt content as string
    """
    if filename in _prompt_cache:
        return _prompt_cache[filename]

    # Get the directory where this file is located
    prompt_dir = os.path.dirname(os.path.abspath(__file__))
    filepath = os.path.join(prompt_dir, filename)

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
            _prompt_cache[filename] = content
            return content
    except FileNotFoundError:
        raise FileNotFoundError(f"Prompt file not found: {filepath}")
    except Exception as e:
        raise RuntimeError(f"Error loading prompt file {filename}: {e}")

def render_prompt(name: str, **values) -> str:
    """
    Load the template ``<name>.txt`` and fill in its placeholders.

    Args:
        name: Template name without extension (e.g., 'stock_prices')
        **values: Placeholder values

    Returns:
        Rendered prompt text
    """
    return load_prompt(f"{name}.txt").format(**values)

MARKET_DATA_SYSTEM_PROMPT = load_prompt("system_prompt_market_data.txt")
