"""KakaoTalk skill-server bridge to a Clawdbot gateway."""

__version__ = "0.3.0"
