# Models package
from .auth import User, UserRole
from .part import Part
from .asset import DocumentAsset, AssetType, RenderStatus
from .upload_session import UploadSession
