"""Artifact stager: puts the installer at a known path on the target."""

from pathlib import Path, PureWindowsPath

from windeploy.exceptions import TransferError
from windeploy.models.results import TransferResult, TransferStage
from windeploy.services.transfer_service import FileTransport


class ArtifactStager:
    """
    Stages the installer from the source share onto the target.

    The source is checked before anything touches the target. After the
    copy, the destination existence check is the authoritative signal.
    """

    def __init__(self, transport: FileTransport):
        self.transport = transport

    def stage(
        self, source_path: str, target_host: str, staging_directory: str, filename: str
    ) -> TransferResult:
        """
        Stage filename from source_path into staging_directory on target_host.

        Returns:
            TransferResult; failure_stage names the step that stopped it
        """
        result = TransferResult()
        source = Path(source_path) / filename
        destination = str(PureWindowsPath(staging_directory) / filename)
        result.destination_path = destination

        if not source.is_file():
            result.failure_stage = TransferStage.SOURCE_MISSING
            result.detail = str(source)
            return result
        result.source_exists = True

        try:
            self.transport.ensure_directory(target_host, staging_directory)
        except TransferError as e:
            result.failure_stage = TransferStage.DIRECTORY
            result.detail = e.context or e.message
            return result
        result.destination_directory_ready = True

        try:
            self.transport.copy(source, target_host, destination)
        except TransferError as e:
            result.failure_stage = TransferStage.COPY
            result.detail = e.context or e.message
            return result
        result.copy_succeeded = True

        if not self.transport.exists(target_host, destination):
            result.failure_stage = TransferStage.VERIFY
            result.detail = destination
            return result
        result.destination_verified = True

        return result
