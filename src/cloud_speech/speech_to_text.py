from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .errors import NoResourceError, TrainingFailedError
from .polling import Classification, PollPolicy, await_completion, wait_for_completion
from .recognize_stream import RecognizeStream
from .service import BaseService, DetailedResponse, Request, require_params

JSON = "application/json"

AudioSource = Union[bytes, bytearray, memoryview, Iterable[bytes], Any]


def classify_training(model: Dict[str, Any]) -> Classification:
    """Classify a custom language model by its training status."""
    if not isinstance(model, dict):
        return Classification.UNEXPECTED
    status = model.get("status")
    if status in ("pending", "training"):
        return Classification.PENDING
    if status in ("ready", "available"):
        return Classification.SUCCESS
    if status == "failed":
        return Classification.FAILURE
    return Classification.UNEXPECTED


def classify_corpora(corpora: Dict[str, Any]) -> Classification:
    """Classify a corpora listing: any corpus still processing keeps the whole list pending."""
    if not isinstance(corpora, dict):
        return Classification.UNEXPECTED
    statuses = [record.get("status") for record in corpora.get("corpora", [])]
    if "being_processed" in statuses:
        return Classification.PENDING
    if "analyzed" in statuses:
        return Classification.SUCCESS
    return Classification.UNEXPECTED


def _model_status(model: Dict[str, Any]) -> str:
    if not isinstance(model, dict):
        return repr(model)
    return str(model.get("status"))


def _corpora_status(corpora: Dict[str, Any]) -> str:
    if not isinstance(corpora, dict):
        return repr(corpora)
    return ", ".join(str(record.get("status")) for record in corpora.get("corpora", [])) or "<none>"


def _is_streamed(audio: Any) -> bool:
    return not isinstance(audio, (bytes, bytearray, memoryview, str))


def _join(value: Optional[Iterable[str]]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return ",".join(value)


class SpeechToTextV1(BaseService):
    """Client for the speech to text service: models, recognition and custom language models."""

    DEFAULT_SERVICE_URL = "https://api.us-south.speech-to-text.watson.cloud.ibm.com"
    DEFAULT_SERVICE_NAME = "speech_to_text"

    # models

    def list_models(self, *, headers: Optional[Mapping[str, str]] = None) -> DetailedResponse:
        return self.send(
            Request("GET", "/v1/models", headers=self._operation_headers("listModels", {"Accept": JSON}, headers))
        )

    def get_model(self, model_id: str, *, headers: Optional[Mapping[str, str]] = None) -> DetailedResponse:
        require_params(model_id=model_id)
        return self.send(
            Request(
                "GET",
                "/v1/models/{model_id}",
                path={"model_id": model_id},
                headers=self._operation_headers("getModel", {"Accept": JSON}, headers),
            )
        )

    # recognition

    def _recognize_request(
        self,
        audio: AudioSource,
        content_type: Optional[str],
        headers: Optional[Mapping[str, str]],
        options: Dict[str, Any],
    ) -> Request:
        require_params(audio=audio)
        if _is_streamed(audio) and not content_type:
            raise ValueError("If providing `audio` as a stream, `content_type` is required.")
        params = dict(options)
        params["keywords"] = _join(params.get("keywords"))
        return Request(
            "POST",
            "/v1/recognize",
            params=params,
            headers=self._operation_headers("recognize", {"Content-Type": content_type, "Accept": JSON}, headers),
            content=audio,
        )

    def recognize(
        self,
        audio: AudioSource,
        *,
        content_type: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        **options: Any,
    ) -> DetailedResponse:
        """Recognize speech in one request.

        Args:
            audio: Audio bytes, or an iterable/file of bytes
            content_type: Audio format; required when ``audio`` is streamed
            headers: Extra request headers
            **options: Query parameters such as ``model``,
                ``language_customization_id``, ``timestamps``,
                ``word_confidence``, ``keywords`` (a list),
                ``keywords_threshold``, ``max_alternatives``

        Returns:
            DetailedResponse whose result holds the recognition results
        """
        return self.send(self._recognize_request(audio, content_type, headers, options))

    async def recognize_async(
        self,
        audio: AudioSource,
        *,
        content_type: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        **options: Any,
    ) -> DetailedResponse:
        """Async: recognize speech in one request."""
        return await self.send_async(self._recognize_request(audio, content_type, headers, options))

    def recognize_using_websocket(
        self,
        *,
        headers: Optional[Mapping[str, str]] = None,
        **options: Any,
    ) -> RecognizeStream:
        """Open a two-way recognize stream on the service's websocket endpoint.

        ``options`` are passed to RecognizeStream (content_type, model,
        language_customization_id, interim_results, ...).
        """
        merged = dict(self._operation_headers("recognizeUsingWebSocket"))
        merged.update(self.config.headers)
        merged.update(headers or {})
        return RecognizeStream(
            self.config.service_url,
            authenticator=self.config.authenticator,
            disable_ssl_verification=self.config.disable_ssl_verification,
            headers=merged,
            **options,
        )

    # custom language models

    def create_language_model(
        self,
        name: str,
        base_model_name: str,
        *,
        dialect: Optional[str] = None,
        description: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        require_params(name=name, base_model_name=base_model_name)
        body = {"name": name, "base_model_name": base_model_name, "dialect": dialect, "description": description}
        return self.send(
            Request(
                "POST",
                "/v1/customizations",
                headers=self._operation_headers(
                    "createLanguageModel", {"Accept": JSON, "Content-Type": JSON}, headers
                ),
                json={k: v for k, v in body.items() if v is not None},
            )
        )

    def list_language_models(
        self, *, language: Optional[str] = None, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        return self.send(
            Request(
                "GET",
                "/v1/customizations",
                params={"language": language},
                headers=self._operation_headers("listLanguageModels", {"Accept": JSON}, headers),
            )
        )

    def _get_language_model_request(self, customization_id: str, headers: Optional[Mapping[str, str]]) -> Request:
        require_params(customization_id=customization_id)
        return Request(
            "GET",
            "/v1/customizations/{customization_id}",
            path={"customization_id": customization_id},
            headers=self._operation_headers("getLanguageModel", {"Accept": JSON}, headers),
        )

    def get_language_model(
        self, customization_id: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        return self.send(self._get_language_model_request(customization_id, headers))

    async def get_language_model_async(
        self, customization_id: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        return await self.send_async(self._get_language_model_request(customization_id, headers))

    def delete_language_model(
        self, customization_id: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        require_params(customization_id=customization_id)
        return self.send(
            Request(
                "DELETE",
                "/v1/customizations/{customization_id}",
                path={"customization_id": customization_id},
                headers=self._operation_headers("deleteLanguageModel", {"Accept": JSON}, headers),
            )
        )

    def train_language_model(
        self,
        customization_id: str,
        *,
        word_type_to_add: Optional[str] = None,
        customization_weight: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        """Start training; use ``when_customization_ready`` to wait for it to finish."""
        require_params(customization_id=customization_id)
        return self.send(
            Request(
                "POST",
                "/v1/customizations/{customization_id}/train",
                path={"customization_id": customization_id},
                params={"word_type_to_add": word_type_to_add, "customization_weight": customization_weight},
                headers=self._operation_headers("trainLanguageModel", {"Accept": JSON}, headers),
            )
        )

    # corpora

    def _list_corpora_request(self, customization_id: str, headers: Optional[Mapping[str, str]]) -> Request:
        require_params(customization_id=customization_id)
        return Request(
            "GET",
            "/v1/customizations/{customization_id}/corpora",
            path={"customization_id": customization_id},
            headers=self._operation_headers("listCorpora", {"Accept": JSON}, headers),
        )

    def list_corpora(self, customization_id: str, *, headers: Optional[Mapping[str, str]] = None) -> DetailedResponse:
        return self.send(self._list_corpora_request(customization_id, headers))

    async def list_corpora_async(
        self, customization_id: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        return await self.send_async(self._list_corpora_request(customization_id, headers))

    def add_corpus(
        self,
        customization_id: str,
        corpus_name: str,
        corpus_file: Any,
        *,
        allow_overwrite: Optional[bool] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> DetailedResponse:
        """Upload a plain-text corpus; analysis runs server-side (see ``when_corpora_analyzed``)."""
        require_params(customization_id=customization_id, corpus_name=corpus_name, corpus_file=corpus_file)
        return self.send(
            Request(
                "POST",
                "/v1/customizations/{customization_id}/corpora/{corpus_name}",
                path={"customization_id": customization_id, "corpus_name": corpus_name},
                params={"allow_overwrite": allow_overwrite},
                headers=self._operation_headers("addCorpus", {"Accept": JSON}, headers),
                files={"corpus_file": (corpus_name, corpus_file, "text/plain")},
            )
        )

    def get_corpus(
        self, customization_id: str, corpus_name: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        require_params(customization_id=customization_id, corpus_name=corpus_name)
        return self.send(
            Request(
                "GET",
                "/v1/customizations/{customization_id}/corpora/{corpus_name}",
                path={"customization_id": customization_id, "corpus_name": corpus_name},
                headers=self._operation_headers("getCorpus", {"Accept": JSON}, headers),
            )
        )

    def delete_corpus(
        self, customization_id: str, corpus_name: str, *, headers: Optional[Mapping[str, str]] = None
    ) -> DetailedResponse:
        require_params(customization_id=customization_id, corpus_name=corpus_name)
        return self.send(
            Request(
                "DELETE",
                "/v1/customizations/{customization_id}/corpora/{corpus_name}",
                path={"customization_id": customization_id, "corpus_name": corpus_name},
                headers=self._operation_headers("deleteCorpus", {"Accept": JSON}, headers),
            )
        )

    # waiting on server-side jobs

    def when_customization_ready(
        self,
        customization_id: str,
        *,
        interval: int = 5000,
        times: int = 30,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """Wait while a custom model is ``pending`` or ``training``.

        The model stays ``pending`` until at least one corpus or word is added.

        Args:
            customization_id: The GUID of the custom language model
            interval: Milliseconds to wait between status checks
            times: Maximum number of status checks
            headers: Extra headers for each status request

        Returns:
            The final custom model once it is ``ready`` or ``available``

        Raises:
            PollTimeoutError: Still pending after ``times`` checks (code ERR_TIMEOUT)
            TrainingFailedError: The model reports ``failed``
            UnexpectedStatusError: Any other status
            SpeechServiceError: A status request failed
        """
        require_params(customization_id=customization_id)
        return wait_for_completion(
            customization_id,
            lambda handle: self.get_language_model(handle, headers=headers).result,
            classify_training,
            PollPolicy(interval=interval, max_attempts=times),
            failure_error=TrainingFailedError,
            label="Customization",
            status_of=_model_status,
        )

    async def when_customization_ready_async(
        self,
        customization_id: str,
        *,
        interval: int = 5000,
        times: int = 30,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """Async: wait while a custom model is ``pending`` or ``training``."""
        require_params(customization_id=customization_id)

        async def fetch(handle: str) -> Dict[str, Any]:
            return (await self.get_language_model_async(handle, headers=headers)).result

        return await await_completion(
            customization_id,
            fetch,
            classify_training,
            PollPolicy(interval=interval, max_attempts=times),
            failure_error=TrainingFailedError,
            label="Customization",
            status_of=_model_status,
        )

    def when_corpora_analyzed(
        self,
        customization_id: str,
        *,
        interval: int = 5000,
        times: int = 30,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """Wait while any corpus of a custom model is ``being_processed``.

        Raises NoResourceError (code ERR_NO_CORPORA) without polling when the
        model has no corpora; otherwise behaves like ``when_customization_ready``
        and returns the final corpora listing.
        """
        require_params(customization_id=customization_id)

        def has_corpora(handle: str) -> None:
            _require_corpora(handle, self.list_corpora(handle, headers=headers).result)

        return wait_for_completion(
            customization_id,
            lambda handle: self.list_corpora(handle, headers=headers).result,
            classify_corpora,
            PollPolicy(interval=interval, max_attempts=times),
            precondition=has_corpora,
            label="Corpora",
            status_of=_corpora_status,
        )

    async def when_corpora_analyzed_async(
        self,
        customization_id: str,
        *,
        interval: int = 5000,
        times: int = 30,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """Async: wait while any corpus of a custom model is ``being_processed``."""
        require_params(customization_id=customization_id)

        async def has_corpora(handle: str) -> None:
            _require_corpora(handle, (await self.list_corpora_async(handle, headers=headers)).result)

        async def fetch(handle: str) -> Dict[str, Any]:
            return (await self.list_corpora_async(handle, headers=headers)).result

        return await await_completion(
            customization_id,
            fetch,
            classify_corpora,
            PollPolicy(interval=interval, max_attempts=times),
            precondition=has_corpora,
            label="Corpora",
            status_of=_corpora_status,
        )


def _require_corpora(handle: str, corpora: Optional[Dict[str, Any]]) -> None:
    if not isinstance(corpora, dict) or not corpora.get("corpora"):
        raise NoResourceError(
            "Customization has no corpora and therefore corpus cannot be analyzed",
            handle=handle,
        )
