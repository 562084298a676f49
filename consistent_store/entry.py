"""
Entradas do log e o handle que as associa aos metadados do serviço de coordenação.
"""
from typing import Generic, Optional, Protocol, Type, TypeVar


class LogEntry(Protocol):
    """
    Capacidades que o store exige de uma entrada do log.

    ``common.models.LoggedCertificate`` é a implementação concreta.
    """
    sequence_number: Optional[int]

    def has_sequence_number(self) -> bool: ...

    def serialize(self) -> str: ...

    @classmethod
    def deserialize(cls, data: str) -> "LogEntry": ...

    def content_hash(self) -> bytes: ...

    def identity(self) -> str: ...

    def copy_backfilled_from(self, other: "LogEntry") -> None: ...


T = TypeVar("T", bound=LogEntry)


class EntryHandle(Generic[T]):
    """
    Uma entrada do log e, quando lida do serviço de coordenação, sua chave e revisão.

    Handles criados pelo chamador não têm metadados; handles devolvidos pelas
    listagens do store têm.
    """

    def __init__(self, entry: T, key: Optional[str] = None, revision: Optional[int] = None):
        if (key is None) != (revision is None):
            raise ValueError("key e revision devem ser informados juntos")
        self._entry = entry
        self._key = key
        self._revision = revision

    @classmethod
    def from_stored(cls, entry_type: Type[T], key: str, value: str, revision: int) -> "EntryHandle[T]":
        """
        Cria um handle a partir de um valor lido do serviço de coordenação.

        Raises:
            ValueError: Se ``value`` não puder ser desserializado como ``entry_type``.
        """
        return cls(entry_type.deserialize(value), key=key, revision=revision)

    @property
    def entry(self) -> T:
        return self._entry

    @property
    def key(self) -> Optional[str]:
        return self._key

    @property
    def revision(self) -> Optional[int]:
        return self._revision

    def has_metadata(self) -> bool:
        """True se o handle reflete uma leitura persistida."""
        return self._key is not None

    def __eq__(self, other) -> bool:
        if not isinstance(other, EntryHandle):
            return NotImplemented
        return (self._entry == other._entry
                and self._key == other._key
                and self._revision == other._revision)

    def __repr__(self) -> str:
        return f"EntryHandle(entry={self._entry!r}, key={self._key!r}, revision={self._revision!r})"
