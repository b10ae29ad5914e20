from pansharp.pansharpening.base import BasePansharpening
from pansharp.raster.base import RasterAlgebra
from pansharp.raster.kernels import square_kernel


class SFIMPansharpening(BasePansharpening):
    """
    Паншарпинг Smoothing Filter-based Intensity Modulation
    Formula: PS_i = MS_i * PAN / PAN_smooth, PAN_smooth - среднее PAN в окне
    радиуса (msRes / panRes) / 2
    """

    method_name = 'SFIM'

    def _apply_pansharpening(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        ratio = ms.resolution / pan.resolution
        pan_smooth = pan.reduce_neighborhood(square_kernel(ratio / 2), 'mean')

        ms_upsampled = self._upsample_ms_to_pan(ms, pan, method='bicubic')

        return ms_upsampled.multiply(pan).divide(pan_smooth)


def sfim(ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
    return SFIMPansharpening().sharpen(ms, pan)
