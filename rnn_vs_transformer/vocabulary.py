"""
Word-Level Vocabulary

The walkthrough's sentences are tiny ("the cat sat on the mat"), so a
word-level vocabulary keeps token ids readable: every id is a whole word and
an attention matrix can be labelled with the words themselves.

Special Tokens:
    <pad> = 0: Fills short sentences in a batch
    <unk> = 1: Any word not seen while building
    <bos> = 2: Start of sentence
    <eos> = 3: End of sentence

Classes:
    Vocabulary: Builds, encodes, decodes, saves and loads word ids
"""

import json
import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"[a-z0-9']+|[^\sa-z0-9']")


class Vocabulary:
    """
    Maps words to integer ids and back.

    Ids are assigned after the special tokens in order of descending
    frequency, ties broken by the order words were first seen, so building
    from the same texts always yields the same ids.

    Example:
        >>> vocab = Vocabulary().build(["The cat sat on the mat."])
        >>> vocab.encode("the cat")
        [4, 5]
        >>> vocab.decode([4, 5])
        'the cat'
    """

    PAD_TOKEN = "<pad>"
    UNK_TOKEN = "<unk>"
    BOS_TOKEN = "<bos>"
    EOS_TOKEN = "<eos>"
    SPECIAL_TOKENS = (PAD_TOKEN, UNK_TOKEN, BOS_TOKEN, EOS_TOKEN)

    pad_token_id = 0
    unk_token_id = 1
    bos_token_id = 2
    eos_token_id = 3

    def __init__(self):
        self.id_to_word: Dict[int, str] = {}
        self.word_to_id: Dict[str, int] = {}
        self._reset()

    def _reset(self) -> None:
        self.id_to_word = dict(enumerate(self.SPECIAL_TOKENS))
        self.word_to_id = {word: i for i, word in self.id_to_word.items()}

    @property
    def size(self) -> int:
        """Number of entries including special tokens."""
        return len(self.id_to_word)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, word: str) -> bool:
        return word in self.word_to_id

    @staticmethod
    def tokenize(text: str) -> List[str]:
        """
        Lower-case and split into words, keeping punctuation as separate tokens.

        >>> Vocabulary.tokenize("The cat sat.")
        ['the', 'cat', 'sat', '.']
        """
        return _TOKEN_PATTERN.findall(text.lower())

    def build(self, texts: Iterable[str], min_frequency: int = 1) -> "Vocabulary":
        """
        (Re)build the vocabulary from ``texts``.

        Args:
            texts: Sentences or documents
            min_frequency: Drop words seen fewer times than this

        Returns:
            self, so construction can be chained.
        """
        if min_frequency < 1:
            raise ValueError(f"min_frequency must be >= 1, got {min_frequency}")

        counts: Counter = Counter()
        first_seen: Dict[str, int] = {}
        for text in texts:
            for word in self.tokenize(text):
                counts[word] += 1
                first_seen.setdefault(word, len(first_seen))

        self._reset()
        ordered = sorted(counts, key=lambda word: (-counts[word], first_seen[word]))
        for word in ordered:
            if counts[word] < min_frequency or word in self.word_to_id:
                continue
            new_id = len(self.id_to_word)
            self.id_to_word[new_id] = word
            self.word_to_id[word] = new_id

        logger.debug("Built vocabulary with %d entries", self.size)
        return self

    def encode(self, text: str, add_special_tokens: bool = False) -> List[int]:
        """Convert text to ids; unknown words become ``<unk>``."""
        ids = [self.word_to_id.get(word, self.unk_token_id) for word in self.tokenize(text)]
        if add_special_tokens:
            ids = [self.bos_token_id] + ids + [self.eos_token_id]
        return ids

    def decode(self, token_ids: Iterable[int], skip_special_tokens: bool = True) -> str:
        """Convert ids back to space-separated words."""
        words = []
        for token_id in token_ids:
            token_id = int(token_id)
            if skip_special_tokens and token_id < len(self.SPECIAL_TOKENS):
                continue
            words.append(self.id_to_word.get(token_id, self.UNK_TOKEN))
        return " ".join(words)

    def batch_encode(
        self,
        texts: List[str],
        add_special_tokens: bool = False,
        max_length: Optional[int] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Encode several texts into one padded id matrix.

        Args:
            texts: Sentences to encode
            add_special_tokens: Wrap each sentence in <bos>/<eos>
            max_length: Truncate sequences longer than this

        Returns:
            token_ids: int64 array of shape (len(texts), longest_length)
            keep_mask: bool array, True for real tokens and False for padding
        """
        encoded = [self.encode(text, add_special_tokens) for text in texts]
        if max_length is not None:
            encoded = [ids[:max_length] for ids in encoded]

        longest = max((len(ids) for ids in encoded), default=0)
        token_ids = np.full((len(encoded), longest), self.pad_token_id, dtype=np.int64)
        keep_mask = np.zeros((len(encoded), longest), dtype=bool)
        for row, ids in enumerate(encoded):
            token_ids[row, : len(ids)] = ids
            keep_mask[row, : len(ids)] = True
        return token_ids, keep_mask

    def save(self, path: str) -> None:
        """Save the id -> word table to JSON."""
        data = {"id_to_word": {str(k): v for k, v in self.id_to_word.items()}}
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    @classmethod
    def load(cls, path: str) -> "Vocabulary":
        """
        Load a vocabulary written by ``save``.

        Raises:
            ValueError: If the special tokens are missing or moved.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        vocabulary = cls()
        vocabulary.id_to_word = {int(k): v for k, v in data["id_to_word"].items()}
        vocabulary.word_to_id = {v: k for k, v in vocabulary.id_to_word.items()}

        for expected_id, token in enumerate(cls.SPECIAL_TOKENS):
            if vocabulary.id_to_word.get(expected_id) != token:
                raise ValueError(
                    f"Vocabulary file {path} does not have {token} at id {expected_id}"
                )
        return vocabulary
