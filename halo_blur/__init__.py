from .errors import BlurError, CommunicationError, ImageValidationError
from .image import Image, PixelBuffer, load_image, make_constant, make_pattern, save_image, validate_image
from .partition import Partition, PartitionPlan, plan_partition
from .reference import blur_reference
from .task import DistributedBlurTask, SequentialBlurTask, blur_distributed

__version__ = "0.1.0"
