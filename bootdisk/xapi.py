"""Helpers for XenAPI sessions and virtual disk images."""

import contextlib
import logging
from collections.abc import Generator
from typing import Any

import XenAPI

from bootdisk.constants import (
    VDI_NAME_LABEL,
    VDI_TYPE,
    XAPI_NULL_REF,
    XAPI_ORIGINATOR,
    XAPI_VERSION,
)
from bootdisk.errors import AuthenticationError, StorageLookupError, VdiCreateError

logger = logging.getLogger(__name__)


class XapiSession:
    """Wrapper around an authenticated XenAPI session."""

    def __init__(self, session: XenAPI.Session, url: str) -> None:
        """Initialise instance with logged in session."""
        self.session = session
        self.url = url

    @property
    def xenapi(self) -> Any:
        """Return dispatcher for XenAPI calls."""
        return self.session.xenapi

    @classmethod
    def login(
        cls: type["XapiSession"],
        url: str,
        username: str,
        password: str,
        verify: bool = True,
    ) -> "XapiSession":
        """Open session to pool master at url with username and password."""
        session = XenAPI.Session(url, ignore_ssl=not verify)
        try:
            session.xenapi.login_with_password(
                username, password, XAPI_VERSION, XAPI_ORIGINATOR
            )
        except (XenAPI.Failure, OSError) as exc:
            raise AuthenticationError(
                f"Login to '{url}' as '{username}' failed: {exc}"
            ) from exc
        logger.info("Logged in to %s as %s", url, username)
        return cls(session, url)

    def logout(self) -> None:
        """Close session."""
        self.xenapi.session.logout()
        logger.info("Logged out of %s", self.url)

    def get_default_sr(self) -> str:
        """
        Return default storage repository of the first pool.

        Only a single pool is expected behind one pool master.
        """
        try:
            pools = self.xenapi.pool.get_all()
            if not pools:
                raise StorageLookupError(f"No pools found at '{self.url}'")
            sr = self.xenapi.pool.get_default_SR(pools[0])
        except XenAPI.Failure as exc:
            raise StorageLookupError(f"Default SR lookup failed: {exc}") from exc
        if not sr or sr == XAPI_NULL_REF:
            raise StorageLookupError(f"Pool '{pools[0]}' has no default SR")
        return sr

    def create_vdi(
        self,
        sr: str,
        virtual_size: int,
        name_label: str = VDI_NAME_LABEL,
        name_description: str = "",
    ) -> str:
        """Create VDI of virtual_size bytes on sr and return its reference."""
        record = {
            "name_label": name_label,
            "name_description": name_description,
            "SR": sr,
            "virtual_size": str(virtual_size),
            "type": VDI_TYPE,
            "sharable": False,
            "read_only": False,
            "other_config": {},
            "xenstore_data": {},
            "sm_config": {},
            "tags": [],
        }
        try:
            vdi = self.xenapi.VDI.create(record)
        except XenAPI.Failure as exc:
            raise VdiCreateError(f"Creating VDI on SR '{sr}' failed: {exc}") from exc
        logger.info("Created %d byte VDI %s", virtual_size, vdi)
        return vdi

    def get_vdi_uuid(self, vdi: str) -> str:
        """Return UUID of VDI."""
        return self.xenapi.VDI.get_uuid(vdi)

    def destroy_vdi(self, vdi: str) -> None:
        """Destroy VDI."""
        self.xenapi.VDI.destroy(vdi)
        logger.info("Destroyed VDI %s", vdi)



@contextlib.contextmanager
def logged_in(
    url: str, username: str, password: str, verify: bool = True
) -> Generator[XapiSession]:
    """
    Context manager to log in, then log out on closing.

    A failed logout is raised when the context succeeded, but only
    logged when another error is already propagating.
    """
    session = XapiSession.login(url, username, password, verify=verify)
    try:
        yield session
    except BaseException:
        try:
            session.logout()
        except Exception as exc:
            logger.warning("Logout from %s failed: %s", url, exc)
        raise
    session.logout()


@contextlib.contextmanager
def scratch_vdi(
    session: XapiSession,
    sr: str,
    virtual_size: int,
    name_label: str = VDI_NAME_LABEL,
) -> Generator[str]:
    """Context manager to create VDI, destroying it before re-raising any error."""
    vdi = session.create_vdi(sr, virtual_size, name_label=name_label)
    try:
        yield vdi
    except BaseException as exc:
        logger.error("Caught: %s, cleaning up", exc)
        session.destroy_vdi(vdi)
        raise
