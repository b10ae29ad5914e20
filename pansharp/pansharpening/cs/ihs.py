from pansharp.exceptions import InvalidInputError
from pansharp.pansharpening.base import BasePansharpening
from pansharp.raster.base import RasterAlgebra


class IHSPansharpening(BasePansharpening):
    """
    Паншарпинг методом IHS: RGB -> HSV, замена канала value на PAN, HSV -> RGB.
    MS изображение должно содержать ровно 3 канала в порядке R, G, B.
    """

    method_name = 'IHS'

    def _validate_inputs(self, ms: RasterAlgebra, pan: RasterAlgebra):
        super()._validate_inputs(ms, pan)
        if ms.band_count != 3:
            raise InvalidInputError(
                f"IHS требует ровно 3 канала (R, G, B), получено {ms.band_count}: {list(ms.band_names)}"
            )

    def _apply_pansharpening(self, ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
        ms_upsampled = self._upsample_ms_to_pan(ms, pan)
        ms_hsv = ms_upsampled.rgb_to_hsv()

        # Заменяем канал value на PAN и возвращаемся в RGB
        sharpened = (
            ms_hsv
            .select(['hue', 'saturation'])
            .add_bands(pan.rename(['value']))
            .hsv_to_rgb()
        )

        return sharpened.rename(ms.band_names)


def ihs(ms: RasterAlgebra, pan: RasterAlgebra) -> RasterAlgebra:
    return IHSPansharpening().sharpen(ms, pan)
