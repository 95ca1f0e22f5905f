"""
Example: stream an audio file to the recognize websocket and print final transcripts.

Environment variables:
- SPEECH_TO_TEXT_URL, SPEECH_TO_TEXT_APIKEY or SPEECH_TO_TEXT_BEARER_TOKEN
- AUDIO_FILE (a WAV file)
"""
import asyncio
import os
from pathlib import Path

from cloud_speech import ServiceConfig, SpeechToTextV1

CHUNK_SIZE = 8192


async def main() -> None:
    config = ServiceConfig.from_environment("speech_to_text", default_url=SpeechToTextV1.DEFAULT_SERVICE_URL)
    if config.authenticator is None:
        raise SystemExit("Set SPEECH_TO_TEXT_APIKEY or SPEECH_TO_TEXT_BEARER_TOKEN.")
    audio = Path(os.environ["AUDIO_FILE"]).read_bytes()

    service = SpeechToTextV1(config)
    async with service.recognize_using_websocket(content_type="audio/wav", interim_results=False) as stream:
        for start in range(0, len(audio), CHUNK_SIZE):
            await stream.write(audio[start:start + CHUNK_SIZE])
        await stream.end()
        async for message in stream.results():
            for result in message.get("results", []):
                if result.get("final"):
                    print(result["alternatives"][0]["transcript"])
    await service.aclose()
    service.close()


if __name__ == "__main__":
    asyncio.run(main())
