# packages/l5cfg/src/l5cfg/config.py
from __future__ import annotations
import codecs
import os
from dataclasses import dataclass, replace

__all__ = ["CodecConfig"]


@dataclass(frozen=True, slots=True)
class CodecConfig:
    """
    Configuration **publique et stable** du codec cfg.bin.

    Consommée par `Document.open/save`, `read_stream/write_stream` et le pont JSON.

    Champs
    ------
    encoding : str, default="utf-8"
        Encodage texte des nouveaux documents (et des imports JSON sans champ
        `Encoding`). Doit être un codec Python connu. À la lecture, l'encodage
        est toujours celui déclaré par le fichier (octet à `len-10`).
    footer_window : int, default=32
        Nombre d'octets, en fin de buffer, dans lesquels on cherche la magic
        `01 74 32 62`. Doit être >= 5.
    alignment : int, default=16
        Alignement des sections à l'écriture (et calcul de l'offset de la key
        table à la lecture). Puissance de 2.
    preserve_unknown_hashes : bool, default=True
        Les noms `UNKNOWN_<hex8>` produits au décodage sont réécrits avec leur
        hash d'origine au lieu du CRC32 du placeholder.

    Notes
    -----
    - La dataclass est **immuable** (`frozen=True`).
    - Les validations lèvent une `ValueError` si les bornes sont violées.
    """

    encoding: str = "utf-8"
    footer_window: int = 32
    alignment: int = 16
    preserve_unknown_hashes: bool = True

    def __post_init__(self) -> None:
        try:
            codecs.lookup(self.encoding)
        except (LookupError, TypeError):
            raise ValueError(f"CodecConfig.encoding: unknown codec {self.encoding!r}") from None
        if int(self.footer_window) < 5:
            raise ValueError("CodecConfig.footer_window must be >= 5")
        a = int(self.alignment)
        if a <= 0 or (a & (a - 1)) != 0:
            raise ValueError("CodecConfig.alignment must be a power of two")

    @staticmethod
    def from_env(base: "CodecConfig | None" = None) -> "CodecConfig":
        """Overlay `L5CFG_*` environment variables on `base` (defaults if None)."""
        cfg = base or CodecConfig()
        patch = {}
        v = os.getenv("L5CFG_ENCODING")
        if v:
            patch["encoding"] = v.strip()
        v = os.getenv("L5CFG_FOOTER_WINDOW")
        if v:
            patch["footer_window"] = int(v)
        v = os.getenv("L5CFG_PRESERVE_UNKNOWN")
        if v is not None and v != "":
            patch["preserve_unknown_hashes"] = bool(int(v))
        return replace(cfg, **patch) if patch else cfg
