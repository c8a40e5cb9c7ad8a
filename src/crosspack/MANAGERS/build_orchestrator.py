# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Sequential build loop over the container images of a platform command.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..RUNNERS.container_image import ContainerImage
from ..UTILS.errors import CrossPackError
from ..UTILS.log import get_logger

logger = get_logger(__name__)


@dataclass
class BuildReport:
    """
    Outcome of a build loop.

    Attributes:
        artifacts: Image ID -> host path of the packaged artifact.
        failures: Image ID -> error that stopped the image.
        skipped: Image IDs not attempted because the loop stopped early.
    """
    artifacts: Dict[str, str] = field(default_factory=dict)
    failures: Dict[str, CrossPackError] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class BuildOrchestrator:
    """
    Runs prepare -> package -> finalize for each image, one image at a time.
    """

    def __init__(self, images: List[ContainerImage], run_each: Callable[[ContainerImage], str]):
        """
        Initializes the orchestrator.

        :param images: Images in build order.
        :param run_each: Platform step packaging one image; returns the package file name.
        """
        self.images = images
        self.run_each = run_each

    def run(self, fail_fast: bool = False) -> BuildReport:
        """
        Builds every image. A failing image does not stop the others unless fail_fast is set.

        :param fail_fast: Stop at the first failure.
        :return: The build report.
        """
        report = BuildReport()
        for index, image in enumerate(self.images):
            logger.info("[i] Target: %s/%s", image.os, image.architecture.value)
            logger.debug("%r", image)
            error = self._build(image, report)
            if error is not None:
                logger.error("[✗] %s: %s", image.id, error)
                report.failures[image.id] = error
                if fail_fast:
                    report.skipped = [i.id for i in self.images[index + 1:]]
                    break
        return report

    def _build(self, image: ContainerImage, report: BuildReport) -> Optional[CrossPackError]:
        """
        Builds one image and always closes it.

        :return: The error that stopped the image, None on success.
        """
        with image:
            try:
                image.prepare()
                package_name = self.run_each(image)
                report.artifacts[image.id] = image.finalize(package_name)
            except CrossPackError as e:
                return e
        return None
