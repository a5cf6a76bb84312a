"""Handles streamed translation with a local Hugging Face causal language model."""

import logging
import queue
import threading
from typing import Iterator, Optional

import torch
from transformers import (
    AutoModelForCausalLM,
    AutoTokenizer,
    StoppingCriteria,
    StoppingCriteriaList,
    TextIteratorStreamer,
)

from .exceptions import ProviderAccessError, TranslationError
from .translator import TranslationProvider

logger = logging.getLogger(__name__)

DEFAULT_HF_MODEL = "Qwen/Qwen2.5-1.5B-Instruct"

ACCESS_ERROR_MARKERS = ("401", "403", "gated", "not a valid model identifier", "Repository Not Found")


class StopOnEvent(StoppingCriteria):
    """Ends generation once the consumer of the stream has gone away."""

    def __init__(self, event: threading.Event):
        self.event = event

    def __call__(self, input_ids, scores, **kwargs):
        return torch.full((input_ids.shape[0],), self.event.is_set(), dtype=torch.bool, device=input_ids.device)


class HuggingFaceTranslator(TranslationProvider):
    """Implements translation using a Hugging Face instruction-tuned model."""

    def __init__(
        self,
        model_name: str = DEFAULT_HF_MODEL,
        device: str = "cuda",
        max_new_tokens: int = 4096,
        token: Optional[str] = None,
        stream_timeout: float = 120.0
    ):
        """
        Initializes the HuggingFaceTranslator.

        Args:
            model_name: The name of the Hugging Face model.
            device: The device to run the model on ("cuda" or "cpu").
            max_new_tokens: Upper bound on generated tokens per translation.
            token: Optional Hugging Face access token for gated models.
            stream_timeout: Seconds to wait for the next generated fragment.

        Raises:
            ValueError: If the specified device is invalid.
            ProviderAccessError: If the model repository is missing or gated.
            TranslationError: If the model or tokenizer fails to load.
        """
        self.model_name = model_name
        self.device = device
        self.max_new_tokens = max_new_tokens
        self.stream_timeout = stream_timeout

        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA device requested but not available for translation. Falling back to CPU.")
            self.device = "cpu"
        elif self.device not in ["cuda", "cpu"]:
            raise ValueError(f"Invalid device specified: {self.device}. Choose 'cuda' or 'cpu'.")

        logger.info(f"Initializing HuggingFaceTranslator with model '{self.model_name}' on device '{self.device}'")
        try:
            self.tokenizer = AutoTokenizer.from_pretrained(self.model_name, token=token)
            self.model = AutoModelForCausalLM.from_pretrained(self.model_name, token=token)
            self.model.to(self.device)
            self.model.eval() # Set model to evaluation mode
            logger.info(f"Hugging Face model '{self.model_name}' loaded successfully.")
        except Exception as e:
            logger.error(f"Failed to load model or tokenizer '{self.model_name}': {e}", exc_info=True)
            if any(marker in str(e) for marker in ACCESS_ERROR_MARKERS):
                raise ProviderAccessError(f"Model '{self.model_name}' not found or access denied: {e}") from e
            raise TranslationError(f"Failed to load model/tokenizer '{self.model_name}': {e}") from e

    def _encode(self, prompt: str):
        if getattr(self.tokenizer, "chat_template", None):
            messages = [{"role": "user", "content": prompt}]
            input_ids = self.tokenizer.apply_chat_template(
                messages, add_generation_prompt=True, return_tensors="pt"
            )
        else:
            input_ids = self.tokenizer(prompt, return_tensors="pt").input_ids
        return input_ids.to(self.device)

    def stream(self, prompt: str) -> Iterator[str]:
        """
        Generates the translation on a worker thread and yields decoded text.

        Raises:
            TranslationError: If tokenization or generation fails.
        """
        logger.debug(f"Generating with '{self.model_name}' for a prompt of {len(prompt)} chars")
        try:
            input_ids = self._encode(prompt)
        except Exception as e:
            logger.error(f"Failed to tokenize prompt: {e}", exc_info=True)
            raise TranslationError(f"Tokenization failed: {e}") from e

        streamer = TextIteratorStreamer(
            self.tokenizer, skip_prompt=True, skip_special_tokens=True, timeout=self.stream_timeout
        )
        failure = []
        stop = threading.Event()

        def run_generation():
            try:
                with torch.no_grad(): # Disable gradient calculation for inference
                    self.model.generate(
                        input_ids=input_ids,
                        attention_mask=torch.ones_like(input_ids),
                        streamer=streamer,
                        max_new_tokens=self.max_new_tokens,
                        pad_token_id=self.tokenizer.eos_token_id,
                        stopping_criteria=StoppingCriteriaList([StopOnEvent(stop)])
                    )
            except Exception as e:
                logger.error(f"Error during generation: {e}", exc_info=True)
                failure.append(e)
                # Unblock the consumer waiting on the queue
                streamer.end()

        worker = threading.Thread(target=run_generation, name="hf-generate", daemon=True)
        worker.start()
        try:
            for text in streamer:
                if text:
                    yield text
        except queue.Empty as e:
            logger.error(f"No generated text from '{self.model_name}' within {self.stream_timeout}s")
            raise TranslationError(f"Hugging Face generation produced no text for {self.stream_timeout} seconds.") from e
        except Exception as e:
            logger.error(f"Error while reading generated text: {e}", exc_info=True)
            raise TranslationError(f"Hugging Face generation failed: {e}") from e
        finally:
            # Also reached when the consumer closes the stream early
            stop.set()
            worker.join(timeout=5.0)
            if worker.is_alive():
                logger.warning("Generation worker did not stop within 5 seconds.")

        if failure:
            raise TranslationError(f"Hugging Face generation failed: {failure[0]}") from failure[0]
