"""Spoken announcements for Fog of Walk."""

import subprocess
from typing import Optional, Callable


class Audio:
    """Text-to-speech for achievements and route status"""

    callback: Optional[Callable[[str], None]] = None  # Class-level callback for debug GUI

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    @classmethod
    def set_callback(cls, callback: Optional[Callable[[str], None]]):
        """Set callback function for audio events"""
        cls.callback = callback

    def speak(self, text: str):
        """Speak text using espeak (available in Termux)"""
        # Send to callback if set (for debug GUI)
        if Audio.callback:
            Audio.callback(text)

        if not self.enabled:
            return

        try:
            subprocess.run(
                ["espeak", "-s", "150", text],
                capture_output=True,
                timeout=10
            )
        except FileNotFoundError:
            # Fallback: try pyttsx3
            try:
                import pyttsx3
                engine = pyttsx3.init()
                engine.say(text)
                engine.runAndWait()
            except Exception:
                print(f"[AUDIO] {text}")
        except Exception as e:
            print(f"Audio error: {e}")
            print(f"[AUDIO] {text}")
