from __future__ import annotations


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    """Reduce a traceback or long error string to its last meaningful line."""
    lines = [ln.strip() for ln in str(detail or "").splitlines() if ln.strip()]
    if not lines:
        return "Unknown error."
    noise = ("File ", "^", "Traceback ")
    meaningful = [ln for ln in lines if not ln.startswith(noise)]
    out = meaningful[-1] if meaningful else lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    if "permission denied" in s:
        return "Allow microphone access for this app, or check --device and --speech-permission."
    if "no module named" in s or "is not installed" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    if "config file not found" in s:
        return "Configured JSON file is missing. Update the config path or restore the file."
    if "microphone" in s and "failed" in s:
        return "Microphone init failed. Try --list-devices and pick an input with --device."
    if "metered" in s or "downloads are disabled" in s:
        return "The translation model is not installed. Enable --allow-model-download (or --allow-metered) and retry."
    if "no argos package" in s or "unsupported language" in s:
        return "That language pair has no translation model. Pick another pair with 'from'/'to'."
    if "index unavailable" in s or "failed to install" in s:
        return "Model download failed. Check the network connection and retry."
    if "enter some text" in s:
        return "Type 'text <words>' or record with 'r' first."
    return "Check logs for full traceback."
