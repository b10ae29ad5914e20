from typing import Optional

from pansharp.config import HPFAOptions
from pansharp.pansharpening.base import BasePansharpening
from pansharp.raster.base import RasterAlgebra
from pansharp.raster.kernels import fixed_kernel, high_pass_kernel
from pansharp.utils.helpers import default_if_missing
from pansharp.utils.logger import get_logger

logger = get_logger(__name__)


class HPFAPansharpening(BasePansharpening):
    """
    Паншарпинг High-Pass Filter Addition
    Formula: PS_i = MS_i + HPF(PAN)
    """

    method_name = 'HPFA'
    options_class = HPFAOptions

    def _kernel_width(self, ms: RasterAlgebra, pan: RasterAlgebra) -> int:
        """Ширина ядра: заданная или 2 * round(msRes / panRes) + 1"""
        width = default_if_missing(
            self.options.kernel_width,
            2 * int(round(ms.resolution / pan.resolution)) + 1
        )
        return int(width)

    def _apply_pansharpening(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        width = self._kernel_width(ms, pan)
        logger.debug(f"Ширина ядра HPF: {width}")

        kernel = fixed_kernel(high_pass_kernel(width), normalize=True)
        pan_hpf = pan.convolve(kernel)

        ms_upsampled = self._upsample_ms_to_pan(ms, pan)

        return ms_upsampled.add(pan_hpf)


def hpfa(ms: RasterAlgebra, pan: RasterAlgebra, kernel_width: Optional[int] = None) -> RasterAlgebra:
    return HPFAPansharpening(HPFAOptions(kernel_width=kernel_width)).sharpen(ms, pan)
