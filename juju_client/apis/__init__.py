from .bundle_api import BundleApi, BundleChangesError, BundleServiceClient
from .cloud_api import CloudApi
from .model_manager_api import ModelManagerApi

__all__ = ["BundleApi", "BundleChangesError", "BundleServiceClient", "CloudApi", "ModelManagerApi"]
