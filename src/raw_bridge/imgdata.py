"""
引擎侧的只读数据记录

镜像 RAW 解码引擎在 open 之后暴露的内部状态：尺寸、相机标识、曝光参数、
缩略图描述、色彩数据、通用元数据以及各厂商的 MakerNote 结构。
字段名沿用引擎结构体的原始命名，元数据投影直接以字段名作为输出键。
所有字段默认为零值：引擎没有填充某个厂商块时，投影仍然输出全零的块。

字段元数据 ``split`` 表示该数组在输出中拆成多个独立的键。
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _zeros(n: int, value=0) -> tuple:
    return (value,) * n


def _split(*keys: str, default=None):
    if default is None:
        default = _zeros(len(keys))
    return field(default=default, metadata={'split': keys})


# ============================================================================
# 基础信息
# ============================================================================

@dataclass
class ImageSizes:
    raw_height: int = 0
    raw_width: int = 0
    height: int = 0
    width: int = 0
    top_margin: int = 0
    left_margin: int = 0
    iheight: int = 0
    iwidth: int = 0
    pixel_aspect: float = 1.0
    flip: int = 0


@dataclass
class IParams:
    make: str = ''
    model: str = ''
    colors: int = 0
    raw_count: int = 0


@dataclass
class ImgOther:
    iso_speed: float = 0.0
    shutter: float = 0.0
    aperture: float = 0.0
    focal_len: float = 0.0
    timestamp: float = 0.0
    shot_order: int = 0
    desc: str = ''
    artist: str = ''


@dataclass
class ThumbnailInfo:
    tformat: int = 0
    twidth: int = 0
    theight: int = 0
    tlength: int = 0
    tcolors: int = 0
    # 只有 unpack_thumb 成功后才有数据
    thumb: Optional[bytes] = None


@dataclass
class ColorData:
    black: int = 0
    data_maximum: int = 0
    maximum: int = 0
    fmaximum: float = 0.0
    fnorm: float = 0.0
    cam_mul: Tuple[float, ...] = _zeros(4, 0.0)
    pre_mul: Tuple[float, ...] = _zeros(4, 0.0)
    flash_used: float = 0.0
    canon_ev: float = 0.0
    model2: str = ''
    UniqueCameraModel: str = ''
    LocalizedCameraModel: str = ''
    ImageUniqueID: str = ''
    RawDataUniqueID: str = ''
    raw_bps: int = 0
    ExifColorSpace: int = 0


@dataclass
class AFInfoItem:
    AFInfoData_tag: int = 0
    AFInfoData_order: int = 0
    AFInfoData_version: int = 0
    AFInfoData_length: int = 0


@dataclass
class CommonMetadata:
    FlashEC: float = 0.0
    FlashGN: float = 0.0
    CameraTemperature: float = 0.0
    SensorTemperature: float = 0.0
    SensorTemperature2: float = 0.0
    LensTemperature: float = 0.0
    AmbientTemperature: float = 0.0
    BatteryTemperature: float = 0.0
    exifAmbientTemperature: float = 0.0
    exifHumidity: float = 0.0
    exifPressure: float = 0.0
    exifWaterDepth: float = 0.0
    exifAcceleration: float = 0.0
    exifCameraElevationAngle: float = 0.0
    real_ISO: float = 0.0
    exifExposureIndex: float = 0.0
    ColorSpace: int = 0
    firmware: str = ''
    ExposureCalibrationShift: float = 0.0
    afcount: int = 0
    afdata: Tuple[AFInfoItem, ...] = ()


# ============================================================================
# 厂商 MakerNotes
# ============================================================================

@dataclass
class CanonMakernotes:
    ColorDataVer: int = 0
    ColorDataSubVer: int = 0
    SpecularWhiteLevel: int = 0
    NormalWhiteLevel: int = 0
    ChannelBlackLevel: Tuple[int, ...] = _zeros(4)
    AverageBlackLevel: int = 0
    multishot: Tuple[int, ...] = _zeros(4)
    MeteringMode: int = 0
    SpotMeteringMode: int = 0
    FlashMeteringMode: int = 0
    FlashExposureLock: int = 0
    ExposureMode: int = 0
    AESetting: int = 0
    ImageStabilization: int = 0
    FlashMode: int = 0
    FlashActivity: int = 0
    FlashBits: int = 0
    ManualFlashOutput: int = 0
    FlashOutput: int = 0
    FlashGuideNumber: int = 0
    ContinuousDrive: int = 0
    SensorWidth: int = 0
    SensorHeight: int = 0
    AFMicroAdjMode: int = 0
    AFMicroAdjValue: float = 0.0
    MakernotesFlip: int = 0
    RecordMode: int = 0
    SRAWQuality: int = 0
    wbi: int = 0
    RF_lensID: int = 0
    AutoLightingOptimizer: int = 0
    HighlightTonePriority: int = 0
    Quality: int = 0
    CanonLog: int = 0
    ISOgain: Tuple[int, ...] = _zeros(2)


@dataclass
class SensorHighSpeedCrop:
    cleft: int = 0
    ctop: int = 0
    cwidth: int = 0
    cheight: int = 0


@dataclass
class NikonMakernotes:
    ExposureBracketValue: float = 0.0
    ActiveDLighting: int = 0
    ShootingMode: int = 0
    ImageStabilization: Tuple[int, ...] = _zeros(7)
    VibrationReduction: int = 0
    FlashSetting: str = ''
    FlashType: str = ''
    FlashExposureCompensation: Tuple[int, ...] = _zeros(4)
    ExternalFlashExposureComp: Tuple[int, ...] = _zeros(4)
    FlashExposureBracketValue: Tuple[int, ...] = _split(
        'FlashExposureBracketValue0', 'FlashExposureBracketValue1',
        'FlashExposureBracketValue2', 'FlashExposureBracketValue3',
    )
    FlashMode: int = 0
    FlashExposureCompensation2: int = 0
    FlashExposureCompensation3: int = 0
    FlashExposureCompensation4: int = 0
    FlashSource: int = 0
    FlashFirmware: Tuple[int, ...] = _split('FlashFirmware0', 'FlashFirmware1')
    ExternalFlashFlags: int = 0
    FlashControlCommanderMode: int = 0
    FlashOutputAndCompensation: int = 0
    FlashFocalLength: int = 0
    FlashGNDistance: int = 0
    FlashGroupOutputAndCompensation: Tuple[int, ...] = _zeros(4)
    FlashGroupControlMode: Tuple[int, ...] = _split(
        'FlashGroupControlMode0', 'FlashGroupControlMode1',
        'FlashGroupControlMode2', 'FlashGroupControlMode3',
    )
    FlashColorFilter: int = 0
    NEFCompression: int = 0
    ExposureMode: int = 0
    ExposureProgram: int = 0
    nMEshots: int = 0
    MEgainOn: int = 0
    ME_WB: Tuple[float, ...] = _zeros(4, 0.0)
    AFFineTune: int = 0
    AFFineTuneIndex: int = 0
    AFFineTuneAdj: int = 0
    LensDataVersion: int = 0
    FlashInfoVersion: int = 0
    ColorBalanceVersion: int = 0
    key: int = 0
    NEFBitDepth: Tuple[int, ...] = _zeros(4)
    HighSpeedCropFormat: int = 0
    SensorHighSpeedCrop: SensorHighSpeedCrop = field(default_factory=SensorHighSpeedCrop)
    SensorWidth: int = 0
    SensorHeight: int = 0
    Active_D_Lighting: int = 0
    ShotInfoVersion: int = 0
    MakernotesFlip: int = 0
    RollAngle: float = 0.0
    PitchAngle: float = 0.0
    YawAngle: float = 0.0


@dataclass
class FujiMakernotes:
    ExpoMidPointShift: float = 0.0
    DynamicRange: int = 0
    FilmMode: int = 0
    DynamicRangeSetting: int = 0
    DevelopmentDynamicRange: int = 0
    AutoDynamicRange: int = 0
    DRangePriority: int = 0
    DRangePriorityAuto: int = 0
    DRangePriorityFixed: int = 0
    BrightnessCompensation: float = 0.0
    FocusMode: int = 0
    AFMode: int = 0
    FocusPixel: Tuple[int, ...] = _zeros(2)
    PrioritySettings: int = 0
    FocusSettings: int = 0
    AF_C_Settings: int = 0
    FocusWarning: int = 0
    ImageStabilization: Tuple[int, ...] = _zeros(3)
    FlashMode: int = 0
    WB_Preset: int = 0
    ShutterType: int = 0
    ExrMode: int = 0
    Macro: int = 0
    Rating: int = 0
    CropMode: int = 0
    SerialSignature: str = ''
    SensorID: str = ''
    RAFVersion: str = ''
    RAFDataGeneration: int = 0
    RAFDataVersion: int = 0
    isTSNERDTS: int = 0
    DriveMode: int = 0
    BlackLevel: Tuple[int, ...] = _zeros(9)
    RAFData_ImageSizeTable: Tuple[int, ...] = _zeros(32)
    AutoBracketing: int = 0
    SequenceNumber: int = 0
    SeriesLength: int = 0
    PixelShiftOffset: Tuple[float, ...] = _zeros(2, 0.0)
    ImageCount: int = 0


@dataclass
class SonyMakernotes:
    CameraType: int = 0
    Sony0x9400_version: int = 0
    Sony0x9400_ReleaseMode2: int = 0
    Sony0x9400_SequenceImageNumber: int = 0
    Sony0x9400_SequenceLength1: int = 0
    Sony0x9400_SequenceFileNumber: int = 0
    Sony0x9400_SequenceLength2: int = 0
    AFAreaModeSetting: int = 0
    AFAreaMode: int = 0
    FlexibleSpotPosition: Tuple[int, ...] = _zeros(2)
    AFPointSelected: int = 0
    AFPointSelected_0x201e: int = 0
    AFType: int = 0
    FocusLocation: Tuple[int, ...] = _zeros(4)
    FocusPosition: int = 0
    AFMicroAdjValue: int = 0
    AFMicroAdjOn: int = 0
    AFMicroAdjRegisteredLenses: int = 0
    VariableLowPassFilter: int = 0
    LongExposureNoiseReduction: int = 0
    HighISONoiseReduction: int = 0
    HDR: Tuple[int, ...] = _zeros(2)
    group2010: int = 0
    group9050: int = 0
    real_iso_offset: int = 0
    MeteringMode_offset: int = 0
    ExposureProgram_offset: int = 0
    ReleaseMode2_offset: int = 0
    MinoltaCamID: int = 0
    firmware: float = 0.0
    ImageCount3_offset: int = 0
    ImageCount3: int = 0
    ElectronicFrontCurtainShutter: int = 0
    MeteringMode2: int = 0
    SonyDateTime: str = ''
    ShotNumberSincePowerUp: int = 0
    PixelShiftGroupPrefix: int = 0
    PixelShiftGroupID: int = 0
    nShotsInPixelShiftGroup: int = 0
    numInPixelShiftGroup: int = 0
    prd_ImageHeight: int = 0
    prd_ImageWidth: int = 0
    prd_Total_bps: int = 0
    prd_Active_bps: int = 0
    prd_StorageMethod: int = 0
    prd_BayerPattern: int = 0
    SonyRawFileType: int = 0
    RAWFileType: int = 0
    RawSizeType: int = 0
    Quality: int = 0
    FileFormat: int = 0
    MetaVersion: str = ''


@dataclass
class PanasonicMakernotes:
    Compression: int = 0
    BlackLevelDim: int = 0
    BlackLevel: Tuple[float, ...] = _zeros(8, 0.0)
    Multishot: int = 0
    gamma: float = 0.0
    HighISOMultiplier: Tuple[int, ...] = _zeros(3)
    FocusStepNear: int = 0
    FocusStepCount: int = 0
    ZoomPosition: int = 0
    LensManufacturer: int = 0


@dataclass
class OlympusMakernotes:
    CameraType2: Tuple[int, ...] = _zeros(6)
    ValidBits: int = 0
    DriveMode: Tuple[int, ...] = _zeros(5)
    ColorSpace: int = 0
    FocusMode: Tuple[int, ...] = _zeros(2)
    AutoFocus: int = 0
    AFPoint: int = 0
    AFAreas: Tuple[int, ...] = _zeros(64)
    AFPointSelected: Tuple[float, ...] = _zeros(2, 0.0)
    AFResult: int = 0
    AFFineTune: int = 0
    AFFineTuneAdj: Tuple[int, ...] = _zeros(3)
    AspectFrame: Tuple[int, ...] = _split(
        'AspectFrameLeft', 'AspectFrameTop', 'AspectFrameWidth', 'AspectFrameHeight',
    )
    Panorama_mode: int = 0
    Panorama_frameNum: int = 0


@dataclass
class PentaxMakernotes:
    DriveMode: Tuple[int, ...] = _zeros(4)
    FocusMode: Tuple[int, ...] = _zeros(2)
    AFPointSelected: Tuple[int, ...] = _zeros(2)
    AFPointSelected_Area: int = 0
    AFPointsInFocus_version: int = 0
    AFPointsInFocus: int = 0
    FocusPosition: int = 0
    AFAdjustment: int = 0
    AFPointMode: int = 0
    MultiExposure: int = 0
    Quality: int = 0


@dataclass
class HasselbladMakernotes:
    BaseISO: int = 0
    Gain: float = 0.0
    Sensor: str = ''
    SensorUnit: str = ''
    HostBody: str = ''
    SensorCode: int = 0
    SensorSubCode: int = 0
    CoatingCode: int = 0
    uncropped: int = 0
    CaptureSequenceInitiator: str = ''
    SensorUnitConnector: str = ''
    format: int = 0
    nIFD_CM: Tuple[int, ...] = _zeros(2)
    RecommendedCrop: Tuple[int, ...] = _zeros(2)
    # 4x3 矩阵
    mnColorMatrix: Tuple[Tuple[float, ...], ...] = _zeros(4, _zeros(3, 0.0))


@dataclass
class RicohMakernotes:
    AFStatus: int = 0
    AFAreaXPosition: Tuple[int, ...] = _zeros(2)
    AFAreaYPosition: Tuple[int, ...] = _zeros(2)
    AFAreaMode: int = 0
    SensorWidth: int = 0
    SensorHeight: int = 0
    CroppedImageWidth: int = 0
    CroppedImageHeight: int = 0
    WideAdapter: int = 0
    CropMode: int = 0
    NDFilter: int = 0
    AutoBracketing: int = 0
    MacroMode: int = 0
    FlashMode: int = 0
    FlashExposureComp: float = 0.0
    ManualFlashOutput: float = 0.0


@dataclass
class SamsungMakernotes:
    ImageSizeFull: Tuple[int, ...] = _zeros(4)
    ImageSizeCrop: Tuple[int, ...] = _zeros(4)
    key: Tuple[int, ...] = _zeros(11)
    ColorSpace: Tuple[int, ...] = _split('ColorSpace0', 'ColorSpace1')
    DigitalGain: float = 0.0
    DeviceType: int = 0
    LensFirmware: str = ''


@dataclass
class KodakMakernotes:
    BlackLevelTop: int = 0
    BlackLevelBottom: int = 0
    offset_left: int = 0
    offset_top: int = 0
    clipBlack: int = 0
    clipWhite: int = 0
    val018percent: int = 0
    val100percent: int = 0
    val170percent: int = 0
    MakerNoteKodak8a: int = 0
    ISOCalibrationGain: float = 0.0
    AnalogISO: float = 0.0


@dataclass
class PhaseOneMakernotes:
    Software: str = ''
    SystemType: str = ''
    FirmwareString: str = ''
    SystemModel: str = ''


@dataclass
class MakerNotes:
    common: CommonMetadata = field(default_factory=CommonMetadata)
    canon: CanonMakernotes = field(default_factory=CanonMakernotes)
    nikon: NikonMakernotes = field(default_factory=NikonMakernotes)
    fuji: FujiMakernotes = field(default_factory=FujiMakernotes)
    sony: SonyMakernotes = field(default_factory=SonyMakernotes)
    panasonic: PanasonicMakernotes = field(default_factory=PanasonicMakernotes)
    olympus: OlympusMakernotes = field(default_factory=OlympusMakernotes)
    pentax: PentaxMakernotes = field(default_factory=PentaxMakernotes)
    hasselblad: HasselbladMakernotes = field(default_factory=HasselbladMakernotes)
    ricoh: RicohMakernotes = field(default_factory=RicohMakernotes)
    samsung: SamsungMakernotes = field(default_factory=SamsungMakernotes)
    kodak: KodakMakernotes = field(default_factory=KodakMakernotes)
    phase_one: PhaseOneMakernotes = field(default_factory=PhaseOneMakernotes)


@dataclass
class ImageData:
    """引擎在 open 之后的完整只读状态"""
    sizes: ImageSizes = field(default_factory=ImageSizes)
    idata: IParams = field(default_factory=IParams)
    other: ImgOther = field(default_factory=ImgOther)
    thumbnail: ThumbnailInfo = field(default_factory=ThumbnailInfo)
    color: ColorData = field(default_factory=ColorData)
    makernotes: MakerNotes = field(default_factory=MakerNotes)


@dataclass
class ProcessedImage:
    """引擎渲染出的内存图像；数据归引擎所有，拷出后必须交还 dcraw_clear_mem"""
    width: int
    height: int
    colors: int
    bits: int
    data_size: int
    data: bytes
