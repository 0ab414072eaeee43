"""
Raw Bridge 配置文件
包含缩略图格式映射、厂商优先级、方向码定义和批处理默认值
"""

# ==========================================
#           元数据投影配置
# ==========================================

# 映射：引擎缩略图格式码 -> 名称 (元数据中的 thumb_format)
THUMB_FORMAT_NAMES = [
    'unknown',
    'jpeg',
    'bitmap',
    'bitmap16',
    'layer',
    'rollei',
    'h265',
    'jpegxl',
]

# thumbnail_data() 只报告这四种格式
THUMBNAIL_DATA_FORMATS = {
    1: 'jpeg',
    2: 'bitmap',
    3: 'bitmap16',
}
THUMBNAIL_FORMAT_UNKNOWN = 'unknown'

# 厂商扩展块：按顺序做大小写无关的子串匹配，第一个命中者胜出
# (子串, 输出键)
MAKER_PRIORITY = [
    ('canon', 'canon'),
    ('nikon', 'nikon'),
    ('fuji', 'fuji'),
    ('sony', 'sony'),
    ('panasonic', 'panasonic'),
    ('olympus', 'olympus'),
    ('pentax', 'pentax'),
    ('hasselblad', 'hasselblad'),
    ('ricoh', 'ricoh'),
    ('samsung', 'samsung'),
    ('kodak', 'kodak'),
    ('phase one', 'phase_one'),
]

# 旋转 90/270 度的方向码：宽高需要互换
ROTATED_FLIP_CODES = (5, 6, 7)

# ==========================================
#           批处理配置
# ==========================================

# Supported RAW file extensions (lowercase)
SUPPORTED_RAW_EXTENSIONS = [
    '.dng', '.cr2', '.cr3', '.nef', '.arw', '.rw2', '.raf', '.orf', '.pef', '.srw',
    '.3fr', '.iiq', '.dcr', '.kdc',
]

DEFAULT_JOBS = 4
