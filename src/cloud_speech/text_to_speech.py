from typing import AsyncIterable, Iterable, Mapping, Optional

from .service import BaseService, DetailedResponse, Request, require_params

JSON = "application/json"


class TextToSpeechV1(BaseService):
    """Client for the text to speech service: voices, synthesis, pronunciation and custom models."""

    DEFAULT_SERVICE_URL = "https://api.us-south.text-to-speech.watson.cloud.ibm.com"
    DEFAULT_SERVICE_NAME = "text_to_speech"

    # voices

    def list_voices(self, *, headers: Optional[Mapping[str, str]] = None) -> DetailedResponse:
        return self.send(
            Request("GET", "/v1/voices", headers=self._operation_headers("listVoices", {"Accept": JSON}, headers))
        )

    def get_voice(
        self,
        voice: str,
        *,
        customization_id: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        require_params(voice=voice)
        return self.send(
            Request(
                "GET",
                "/v1/voices/{voice}",
                path={"voice": voice},
                params={"customization_id": customization_id},
                headers=self._operation_headers("getVoice", {"Accept": JSON}, headers),
            )
        )

    # synthesis

    def _synthesize_request(
        self,
        text: str,
        accept: Optional[str],
        voice: Optional[str],
        customization_id: Optional[str],
        headers: Optional[Mapping[str, str]],
    ) -> Request:
        require_params(text=text)
        return Request(
            "POST",
            "/v1/synthesize",
            params={"voice": voice, "customization_id": customization_id},
            headers=self._operation_headers("synthesize", {"Content-Type": JSON, "Accept": accept}, headers),
            json={"text": text},
        )

    def synthesize(
        self,
        text: str,
        *,
        accept: Optional[str] = None,
        voice: Optional[str] = None,
        customization_id: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        """Synthesize text (plain or SSML) to audio.

        Args:
            text: Text to synthesize
            accept: Audio format (MIME type), e.g. ``audio/wav``; the service
                defaults to ``audio/ogg;codecs=opus``
            voice: Voice name
            customization_id: Custom model matching the voice's language
            headers: Extra request headers

        Returns:
            DetailedResponse whose result holds the audio bytes
        """
        return self.send(self._synthesize_request(text, accept, voice, customization_id, headers))

    async def synthesize_async(
        self,
        text: str,
        *,
        accept: Optional[str] = None,
        voice: Optional[str] = None,
        customization_id: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        """Async: synthesize text to audio."""
        return await self.send_async(self._synthesize_request(text, accept, voice, customization_id, headers))

    def synthesize_stream(
        self,
        text: str,
        *,
        accept: Optional[str] = None,
        voice: Optional[str] = None,
        customization_id: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Iterable[bytes]:
        """Stream synthesized audio in chunks."""
        return self.send_stream(self._synthesize_request(text, accept, voice, customization_id, headers))

    def synthesize_stream_async(
        self,
        text: str,
        *,
        accept: Optional[str] = None,
        voice: Optional[str] = None,
        customization_id: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> AsyncIterable[bytes]:
        """Async generator: stream synthesized audio in chunks."""
        return self.send_stream_async(self._synthesize_request(text, accept, voice, customization_id, headers))

    # pronunciation

    def get_pronunciation(
        self,
        text: str,
        *,
        voice: Optional[str] = None,
        format: Optional[str] = None,
        customization_id: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        require_params(text=text)
        return self.send(
            Request(
                "GET",
                "/v1/pronunciation",
                params={"text": text, "voice": voice, "format": format, "customization_id": customization_id},
                headers=self._operation_headers("getPronunciation", {"Accept": JSON}, headers),
            )
        )

    # custom models

    def create_custom_model(
        self,
        name: str,
        *,
        language: Optional[str] = None,
        description: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        require_params(name=name)
        body = {"name": name, "language": language, "description": description}
        return self.send(
            Request(
                "POST",
                "/v1/customizations",
                headers=self._operation_headers("createCustomModel", {"Accept": JSON, "Content-Type": JSON}, headers),
                json={k: v for k, v in body.items() if v is not None},
            )
        )

    def list_custom_models(
        self, *, language: Optional[str] = None, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        return self.send(
            Request(
                "GET",
                "/v1/customizations",
                params={"language": language},
                headers=self._operation_headers("listCustomModels", {"Accept": JSON}, headers),
            )
        )

    def get_custom_model(
        self, customization_id: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        require_params(customization_id=customization_id)
        return self.send(
            Request(
                "GET",
                "/v1/customizations/{customization_id}",
                path={"customization_id": customization_id},
                headers=self._operation_headers("getCustomModel", {"Accept": JSON}, headers),
            )
        )

    def delete_custom_model(
        self, customization_id: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        require_params(customization_id=customization_id)
        return self.send(
            Request(
                "DELETE",
                "/v1/customizations/{customization_id}",
                path={"customization_id": customization_id},
                headers=self._operation_headers("deleteCustomModel", None, headers),
            )
        )

    # words

    def add_word(
        self,
        customization_id: str,
        word: str,
        translation: str,
        *,
        part_of_speech: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        """Add or replace one word and its translation in a custom model."""
        require_params(customization_id=customization_id, word=word, translation=translation)
        body = {"translation": translation}
        if part_of_speech is not None:
            body["part_of_speech"] = part_of_speech
        return self.send(
            Request(
                "PUT",
                "/v1/customizations/{customization_id}/words/{word}",
                path={"customization_id": customization_id, "word": word},
                headers=self._operation_headers("addWord", {"Content-Type": JSON}, headers),
                json=body,
            )
        )

    def list_words(self, customization_id: str, *, headers: Optional[Mapping[str, str]] = None) -> DetailedResponse:
        require_params(customization_id=customization_id)
        return self.send(
            Request(
                "GET",
                "/v1/customizations/{customization_id}/words",
                path={"customization_id": customization_id},
                headers=self._operation_headers("listWords", {"Accept": JSON}, headers),
            )
        )

    def delete_word(
        self, customization_id: str, word: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        require_params(customization_id=customization_id, word=word)
        return self.send(
            Request(
                "DELETE",
                "/v1/customizations/{customization_id}/words/{word}",
                path={"customization_id": customization_id, "word": word},
                headers=self._operation_headers("deleteWord", None, headers),
            )
        )

    # user data

    def delete_user_data(self, customer_id: str, *, headers: Optional[Mapping[str, str]] = None) -> DetailedResponse:
        """Delete all data associated with a customer ID."""
        require_params(customer_id=customer_id)
        return self.send(
            Request(
                "DELETE",
                "/v1/user_data",
                params={"customer_id": customer_id},
                headers=self._operation_headers("deleteUserData", None, headers),
            )
        )
