import emoji


def format_for_sms(message: str, supports_emoji: bool = False, flatten_newlines: bool = True) -> str:
    """Format an LLM reply for a basic phone's SMS display.

    - Converts emojis to text codes if the phone can't show them
    - Replaces newlines with ' | ' separators
    - Cleans up list formatting
    """
    if not supports_emoji:
        message = emoji.demojize(message)
    if not flatten_newlines:
        return message.strip()

    formatted_lines = []
    for line in message.split('\n'):
        line = line.strip()
        if not line:
            continue
        # "- [ ] item" -> "item", "- item" -> "item"
        if line.startswith('- '):
            line = line[2:]
        if line.startswith('[ ] '):
            line = line[4:]
        formatted_lines.append(line)

    return ' | '.join(formatted_lines)
