"""
Example: convert text to speech using an API key or a bearer token.

Environment variables:
- TEXT_TO_SPEECH_URL (service instance URL)
- TEXT_TO_SPEECH_APIKEY (optional when TEXT_TO_SPEECH_BEARER_TOKEN provided)
- TEXT_TO_SPEECH_BEARER_TOKEN (bearer token)
"""
from pathlib import Path

from cloud_speech import ServiceConfig, TextToSpeechV1


def main() -> None:
    config = ServiceConfig.from_environment("text_to_speech", default_url=TextToSpeechV1.DEFAULT_SERVICE_URL)
    if config.authenticator is None:
        raise SystemExit("Set TEXT_TO_SPEECH_APIKEY or TEXT_TO_SPEECH_BEARER_TOKEN.")

    with TextToSpeechV1(config) as service:
        response = service.synthesize(
            "Hello from the cloud speech client!",
            accept="audio/wav",
            voice="en-US_AllisonV3Voice",
        )

    output = Path("output.wav")
    output.write_bytes(response.result)
    print(f"Wrote synthesized audio to {output}")


if __name__ == "__main__":
    main()
