# API Module - Local HTTP Surface
#
# Import app from .main; routers are mounted there.
