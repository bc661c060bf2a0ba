"""
Stream Recorder

Records the audio of a video playing in Chrome together with its on-screen
captions, and writes a WAV file plus a matching SRT file when the session
ends.

Modules:
- audio: PCM and compressed capture strategies, WAV encoding
- captions: caption sampling and SRT synthesis
- cdp: Chrome DevTools Protocol media page
- session: session controller and artifact delivery
"""

__version__ = "1.0.0"
