from pansharp.pansharpening.base import BasePansharpening
from pansharp.raster.base import RasterAlgebra


class SimpleMeanPansharpening(BasePansharpening):
    """
    Паншарпинг простым средним
    Formula: PS_i = (MS_i + PAN) / 2
    """

    method_name = 'simpleMean'

    def _apply_pansharpening(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        ms_upsampled = self._upsample_ms_to_pan(ms, pan)
        return ms_upsampled.add(pan).divide(2)


def simple_mean(ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
    return SimpleMeanPansharpening().sharpen(ms, pan)
