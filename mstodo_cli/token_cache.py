"""
Persistencia de la caché de tokens
==================================

Guarda en disco la caché serializada de MSAL como un bloque de bytes opaco
en <app_dir>/.token.bin. El contenido no se interpreta ni se encripta aquí.

La escritura es atómica (archivo temporal + os.replace) y solo se realiza
cuando MSAL indica que la caché cambió; esa decisión la toma AuthSession.
"""

import logging
import os
import tempfile
from typing import Optional

from .exceptions import StorageError

logger = logging.getLogger(__name__)

TOKEN_CACHE_FILE = '.token.bin'


class TokenCacheStore:
    """Lectura, escritura y borrado del archivo de caché de tokens."""

    def __init__(self, app_dir: str, filename: str = TOKEN_CACHE_FILE):
        self.app_dir = app_dir
        self.path = os.path.join(app_dir, filename)

    def load(self) -> Optional[bytes]:
        """
        Carga la caché desde el archivo si existe.

        Returns:
            Los bytes almacenados, o None si el archivo no existe

        Raises:
            StorageError: Si el archivo existe pero no se puede leer
        """
        try:
            with open(self.path, 'rb') as f:
                data = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"No se pudo leer la caché de tokens {self.path}: {e}") from e

        logger.debug(f"Caché de tokens cargada ({len(data)} bytes)")
        return data

    def save(self, data: bytes):
        """
        Guarda la caché creando el directorio de la aplicación si no existe.

        Raises:
            StorageError: Si no se puede crear el directorio o escribir el archivo
        """
        tmp_path = None
        try:
            os.makedirs(self.app_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix='.token-', suffix='.tmp', dir=self.app_dir)
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise StorageError(f"No se pudo guardar la caché de tokens {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

        logger.debug(f"Caché de tokens guardada ({len(data)} bytes)")

    def clear(self):
        """Elimina el archivo de caché. Que no exista no es un error."""
        try:
            os.remove(self.path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"No se pudo eliminar la caché de tokens {self.path}: {e}") from e

        logger.info("Caché de tokens eliminada")
