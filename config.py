"""
Configuration settings for the Activity DNA recognition engine.

This module centralizes all configurable parameters to make the system
easy to tune and deploy in different environments.
"""
import os

# =============================================================================
# PATHS CONFIGURATION
# =============================================================================
# Base directory of the application
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Recorded labeled sensor sessions used by the offline trainer
DATA_DIR = os.path.join(BASE_DIR, 'data')
TRAINING_DATA_PATH = os.path.join(DATA_DIR, 'motion_samples.csv')

# Directory for persisted classifier weights (one flat text file per sensor)
MODELS_DIR = os.path.join(BASE_DIR, 'models')

# Suffix of the per-sensor model file, e.g. accelerometer_classifier.bin
MODEL_FILE_SUFFIX = '_classifier.bin'

# Artifacts written next to the models by the offline trainer
NORMALIZATION_STATS_FILENAME = 'normalization_stats.joblib'
LABEL_ENCODER_FILENAME = 'label_encoder.joblib'
NORMALIZATION_STATS_PATH = os.path.join(MODELS_DIR, NORMALIZATION_STATS_FILENAME)

# =============================================================================
# SENSOR CONFIGURATION
# =============================================================================
# Feature vector length per sensor modality
TOUCH_FEATURE_SIZE = 24
MOTION_FEATURE_SIZE = 18

# Axes of a movement sensor reading
NUM_AXES = 3
AXIS_NAMES = ['x', 'y', 'z']

# Statistics computed per axis, in feature-vector order
MOTION_FEATURES_PER_AXIS = ['mean', 'std', 'min', 'max', 'range', 'energy']

# Activities used by the simulator and as default labels
ACTIVITY_CLASSES = ['walking', 'running', 'sitting', 'standing']

# =============================================================================
# WINDOWING CONFIGURATION
# =============================================================================
# Samples per inference window (50 Hz sampling -> 1 second)
WINDOW_SIZE = 50

# Hop between consecutive training windows
WINDOW_STEP = 25

# =============================================================================
# NETWORK CONFIGURATION
# =============================================================================
HIDDEN1_SIZE = 32
HIDDEN2_SIZE = 16

# Added to the target probability before taking the log in the loss
LOSS_EPSILON = 1e-7

# =============================================================================
# TRAINING CONFIGURATION
# =============================================================================
DEFAULT_LEARNING_RATE = 0.01
DEFAULT_EPOCHS = 10
DEFAULT_NUM_CLASSES = 2

# Train/test split ratio used by the offline trainer
TRAIN_TEST_SPLIT_RATIO = 0.2

# Random seed for reproducibility
RANDOM_SEED = 42

# =============================================================================
# FUSION CONFIGURATION
# =============================================================================
DEFAULT_SENSOR_WEIGHT = 1.0
MIN_SENSOR_WEIGHT = 0.0
MAX_SENSOR_WEIGHT = 2.0

# Confidence above which a single prediction counts as high confidence
HIGH_CONFIDENCE_THRESHOLD = 0.7

# =============================================================================
# DNA AGGREGATOR CONFIGURATION
# =============================================================================
DNA_HISTORY_SIZE = 10
DNA_CONFIDENCE_THRESHOLD = 0.6
DNA_STABILITY_THRESHOLD = 3
DNA_MIN_SAMPLES = 3
DNA_RECENCY_DECAY = 0.8

# Label reported when there is nothing to aggregate
UNKNOWN_LABEL = 'unknown'

# =============================================================================
# INFERENCE CONFIGURATION
# =============================================================================
# Target latency of one pipeline step in milliseconds
TARGET_LATENCY_MS = 50

# Number of recent latency readings kept for statistics
LATENCY_HISTORY_SIZE = 100

# =============================================================================
# SIMULATED SENSOR CONFIGURATION
# =============================================================================
# Interval between simulated samples in milliseconds
STREAM_INTERVAL_MS = 20

# Noise standard deviation for simulated signals
SIMULATED_NOISE_STD = 0.05

# Gravity along the device z axis when lying flat (m/s^2)
GRAVITY = 9.81
