"""Local test helpers: input generation, mock SSH servers and ZeroMQ clients."""