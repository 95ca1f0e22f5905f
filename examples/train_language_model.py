"""
Example: add a corpus to a custom language model, wait for analysis, train
and wait for training to finish.

Environment variables:
- SPEECH_TO_TEXT_URL (service instance URL)
- SPEECH_TO_TEXT_APIKEY or SPEECH_TO_TEXT_BEARER_TOKEN
- CUSTOMIZATION_ID (an existing custom language model)
- CORPUS_FILE (path to a plain-text corpus)
"""
import asyncio
import os
from pathlib import Path

from cloud_speech import PollTimeoutError, ServiceConfig, SpeechToTextV1


async def main() -> None:
    config = ServiceConfig.from_environment("speech_to_text", default_url=SpeechToTextV1.DEFAULT_SERVICE_URL)
    if config.authenticator is None:
        raise SystemExit("Set SPEECH_TO_TEXT_APIKEY or SPEECH_TO_TEXT_BEARER_TOKEN.")
    customization_id = os.environ["CUSTOMIZATION_ID"]
    corpus = Path(os.environ["CORPUS_FILE"])

    async with SpeechToTextV1(config) as service:
        service.add_corpus(customization_id, corpus.stem, corpus.read_bytes(), allow_overwrite=True)
        corpora = await service.when_corpora_analyzed_async(customization_id, interval=5000, times=60)
        print(f"Corpora analyzed: {[c['name'] for c in corpora['corpora']]}")

        service.train_language_model(customization_id)
        try:
            model = await service.when_customization_ready_async(customization_id, interval=10000, times=60)
        except PollTimeoutError as exc:
            print(f"Still training ({exc.last_snapshot.get('progress')}%), check back later")
        else:
            print(f"Model {customization_id} is {model['status']}")
    service.close()


if __name__ == "__main__":
    asyncio.run(main())
